import datetime
from decimal import ROUND_HALF_UP, Decimal

from django.core.exceptions import ValidationError
from django.db.models import Count, Sum
from django.db.models.functions import Coalesce, TruncMonth
from django.utils import timezone

from .. import conf
from ..models import Client, Invoice, Project, TimeEntry
from ..models.project import PROJECT_STATUS_CHOICES
from ..money import ZERO, to_money

""" Read-only dashboard queries.
    Everything is computed from the ledger at query time; nothing here writes. """


def _shift_month(day, months):
    """First day of the month `months` away from day's month."""
    index = day.year * 12 + (day.month - 1) + months
    return datetime.date(index // 12, index % 12 + 1, 1)


def _start_of_day(day):
    return timezone.make_aware(datetime.datetime.combine(day, datetime.time.min))


def _sum_total(invoices):
    return invoices.aggregate(total=Coalesce(Sum("total"), Decimal("0.00")))["total"]


def revenue_series(owner, months=None, today=None):
    """
    Paid revenue for each of the trailing `months` months, oldest first,
    current month last. Months without paid invoices report 0.00.
    """
    months = conf.revenue_series_months() if months is None else int(months)
    if months < 1:
        raise ValidationError("months must be at least 1")
    today = today or timezone.localdate()

    starts = [_shift_month(today, -offset) for offset in range(months - 1, -1, -1)]
    window_end = _shift_month(today, 1)

    rows = (
        Invoice.objects.for_owner(owner)
        .paid()
        .filter(
            paid_date__gte=_start_of_day(starts[0]),
            paid_date__lt=_start_of_day(window_end),
        )
        .annotate(month=TruncMonth("paid_date"))
        .values("month")
        .annotate(revenue=Sum("total"))
        .order_by("month")
    )
    by_month = {(row["month"].year, row["month"].month): row["revenue"] for row in rows}

    return [
        {
            "month": start,
            "label": start.strftime("%b"),
            "revenue": to_money(by_month.get((start.year, start.month)) or ZERO),
        }
        for start in starts
    ]


def project_status_distribution(owner):
    """Project count per status; statuses nobody uses report 0."""
    counts = dict(
        Project.objects.for_owner(owner)
        .values("status")
        .annotate(count=Count("id"))
        .values_list("status", "count")
    )
    return {status: counts.get(status, 0) for status, _ in PROJECT_STATUS_CHOICES}


def top_clients(owner, limit=None):
    """Clients by lifetime revenue, highest first; ties keep creation order."""
    limit = conf.top_clients_limit() if limit is None else int(limit)
    if limit < 1:
        raise ValidationError("limit must be at least 1")
    return list(
        Client.objects.for_owner(owner)
        .order_by("-total_revenue", "created_at", "pk")
        .values("id", "name", "total_revenue", "project_count")[:limit]
    )


def dashboard_stats(owner, today=None):
    today = today or timezone.localdate()
    month_start = _start_of_day(today.replace(day=1))

    projects = Project.objects.for_owner(owner)
    invoices = Invoice.objects.for_owner(owner)

    tracked_minutes = (
        TimeEntry.objects.for_owner(owner)
        .completed()
        .aggregate(minutes=Coalesce(Sum("duration"), 0))["minutes"]
    )
    total_hours_tracked = (Decimal(tracked_minutes) / Decimal(60)).quantize(
        Decimal("0.1"), rounding=ROUND_HALF_UP
    )

    return {
        "total_clients": Client.objects.active(owner).count(),
        "total_projects": projects.count(),
        "active_projects": projects.filter(status="in-progress").count(),
        "total_revenue": _sum_total(invoices.paid()),
        "pending_revenue": _sum_total(invoices.pending()),
        "monthly_revenue": _sum_total(invoices.paid().filter(paid_date__gte=month_start)),
        "total_hours_tracked": total_hours_tracked,
        "recent_invoices": list(
            invoices.order_by("-created_at", "-pk").values(
                "id", "invoice_number", "client__name", "status", "total"
            )[:5]
        ),
        "recent_projects": list(
            projects.order_by("-created_at", "-pk").values(
                "id", "name", "client__name", "status"
            )[:5]
        ),
    }
