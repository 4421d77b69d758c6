import datetime
from unittest import mock

import pytest
from django.db import DatabaseError

from ..models import Invoice, PendingAggregateDelta
from ..services import send_invoice
from ..tasks import mark_overdue_invoices_task, retry_pending_deltas_task
from .utils import make_client, make_invoice, make_project, make_user


@pytest.mark.django_db
def test_mark_overdue_task_moves_past_due_invoices():
    user = make_user()
    invoice = make_invoice(user, make_client(user), due_date=datetime.date(2020, 1, 31),
                           issue_date=datetime.date(2020, 1, 1))
    send_invoice(user, invoice.pk)

    assert mark_overdue_invoices_task() == 1
    assert Invoice.objects.get(pk=invoice.pk).status == "overdue"


@pytest.mark.django_db
def test_retry_task_applies_queued_deltas():
    user = make_user()
    client = make_client(user)
    with mock.patch(
        "billing_core.services.aggregates._apply_update",
        side_effect=DatabaseError("down"),
    ):
        make_project(user, client)
    assert PendingAggregateDelta.objects.filter(resolved_at__isnull=True).count() == 1

    assert retry_pending_deltas_task() == 1
    client.refresh_from_db()
    assert client.project_count == 1
