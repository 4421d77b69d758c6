import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model

from ..services import create_client, create_invoice, create_project, update_invoice_status


def at(day, hour, minute=0, second=0, month=3, year=2025):
    """Aware UTC datetime; tests run with TIME_ZONE=UTC."""
    return datetime.datetime(
        year, month, day, hour, minute, second, tzinfo=datetime.timezone.utc
    )


def make_user(username="alice"):
    return get_user_model().objects.create_user(username=username, password="pw")


def make_client(owner, name="Acme", email=None, **fields):
    email = email or f"{name.lower().replace(' ', '.')}@example.com"
    return create_client(owner, name=name, email=email, **fields)


def make_project(owner, client, name="Website", rate="100.00", **fields):
    return create_project(owner, client, name, hourly_rate=Decimal(rate), **fields)


# 1 x 100 + 2 x 15 = 130, +10% tax, -5 discount = 138.00
SAMPLE_ITEMS = [
    {"description": "Design", "quantity": 1, "rate": "100.00"},
    {"description": "Hosting", "quantity": 2, "rate": "15.00"},
]


def make_invoice(owner, client, items=None, tax=10, discount=5, **fields):
    fields.setdefault("due_date", datetime.date(2025, 4, 30))
    fields.setdefault("issue_date", datetime.date(2025, 3, 1))
    return create_invoice(
        owner,
        client,
        items=SAMPLE_ITEMS if items is None else items,
        tax=tax,
        discount=discount,
        **fields,
    )


def make_paid_invoice(owner, client, amount, paid_at=None):
    """A single-item invoice for `amount`, marked paid at paid_at."""
    invoice = make_invoice(
        owner,
        client,
        items=[{"description": "Work", "quantity": 1, "rate": str(amount)}],
        tax=0,
        discount=0,
    )
    return update_invoice_status(owner, invoice.pk, "paid", now=paid_at)
