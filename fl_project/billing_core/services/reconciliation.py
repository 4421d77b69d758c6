import logging
from collections import namedtuple
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from ..models import Client, Invoice, PendingAggregateDelta, Project, TimeEntry
from ..money import to_money
from .audit_helper import log_action

logger = logging.getLogger(__name__)

Divergence = namedtuple(
    "Divergence", ["target_type", "target_id", "field", "stored", "expected"]
)


# ------------------------------------
# Recompute functions (source of truth)
# ------------------------------------
def expected_client_totals(client):
    revenue = Invoice.objects.filter(client=client, status="paid").aggregate(
        total=Coalesce(Sum("total"), Decimal("0.00"))
    )["total"]
    return {
        "total_revenue": to_money(revenue),
        "project_count": Project.objects.filter(client=client).count(),
    }


def expected_project_totals(project):
    agg = TimeEntry.objects.filter(project=project).completed().aggregate(
        minutes=Coalesce(Sum("duration"), 0),
        earned=Coalesce(Sum("amount"), Decimal("0.00")),
    )
    return {
        "total_minutes": agg["minutes"],
        "total_earned": to_money(agg["earned"]),
    }


def _compare(target_type, instance, expected):
    return [
        Divergence(target_type, instance.pk, field, getattr(instance, field), value)
        for field, value in expected.items()
        if getattr(instance, field) != value
    ]


def _reconcile_one(model, target_type, target_id, recompute, fix):
    with transaction.atomic():
        # Lock the row so no delta lands between recompute and write
        instance = model.objects.select_for_update().get(pk=target_id)
        found = _compare(target_type, instance, recompute(instance))

        for d in found:
            logger.warning(
                "Aggregate drift on %s %s: %s stored=%s expected=%s",
                d.target_type, d.target_id, d.field, d.stored, d.expected,
            )

        if not fix:
            return found

        if found:
            model.objects.filter(pk=target_id).update(
                **{d.field: d.expected for d in found}
            )
            log_action(
                action="reconcile",
                instance=instance,
                changes={
                    d.field: {"stored": str(d.stored), "expected": str(d.expected)}
                    for d in found
                },
            )
        # the recompute already covers whatever was still queued
        PendingAggregateDelta.objects.filter(
            target_type=target_type, target_id=target_id, resolved_at__isnull=True
        ).update(resolved_at=timezone.now())
        return found


def reconcile_aggregates(owner=None, fix=True):
    """
    Recompute every client and project aggregate from scratch, log each
    divergence and (when fix=True) overwrite the stored value. Returns the
    list of divergences found. Meant to run out-of-band (Celery beat or the
    reconcile_aggregates management command).
    """
    clients = Client.objects.all()
    projects = Project.objects.all()
    if owner is not None:
        clients = clients.filter(owner=owner)
        projects = projects.filter(owner=owner)

    divergences = []
    for client_id in clients.values_list("pk", flat=True):
        divergences += _reconcile_one(
            Client, "client", client_id, expected_client_totals, fix
        )
    for project_id in projects.values_list("pk", flat=True):
        divergences += _reconcile_one(
            Project, "project", project_id, expected_project_totals, fix
        )

    logger.info(
        "Reconciliation %s: %d divergence(s) across %d client(s), %d project(s)",
        "applied" if fix else "dry run",
        len(divergences),
        clients.count(),
        projects.count(),
    )
    return divergences
