from decimal import Decimal
from io import StringIO
from unittest import mock

import pytest
from django.core.management import call_command
from django.db import DatabaseError
from django.test import TestCase

from ..models import AuditLog, Client, PendingAggregateDelta, Project
from ..services import (create_time_entry, reconcile_aggregates,
                        retry_pending_deltas, update_invoice_status)
from ..tasks import reconcile_aggregates_task
from .utils import at, make_client, make_invoice, make_project, make_user


class ReconcileAggregatesTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.client_obj = make_client(self.user)
        self.project = make_project(self.user, self.client_obj, rate="100.00")
        create_time_entry(
            self.user, self.project, "Build", at(10, 9), end_time=at(10, 10, 30)
        )
        invoice = make_invoice(self.user, self.client_obj)
        update_invoice_status(self.user, invoice.pk, "paid")

    def test_consistent_books_report_nothing(self):
        self.assertEqual(reconcile_aggregates(), [])

    def test_drift_is_logged_and_fixed(self):
        Client.objects.filter(pk=self.client_obj.pk).update(
            total_revenue=Decimal("999.00"), project_count=7
        )
        Project.objects.filter(pk=self.project.pk).update(total_minutes=1)

        with self.assertLogs("billing_core.services.reconciliation", "WARNING") as logs:
            found = reconcile_aggregates()

        self.assertEqual(
            sorted((d.target_type, d.field) for d in found),
            [("client", "project_count"), ("client", "total_revenue"),
             ("project", "total_minutes")],
        )
        self.assertEqual(len([r for r in logs.records if r.levelname == "WARNING"]), 3)

        self.client_obj.refresh_from_db()
        self.project.refresh_from_db()
        self.assertEqual(self.client_obj.total_revenue, Decimal("138.00"))
        self.assertEqual(self.client_obj.project_count, 1)
        self.assertEqual(self.project.total_minutes, 90)
        self.assertEqual(self.project.total_earned, Decimal("150.00"))
        self.assertEqual(AuditLog.objects.filter(action="reconcile").count(), 2)

        # second pass finds nothing
        self.assertEqual(reconcile_aggregates(), [])

    def test_dry_run_writes_nothing(self):
        Client.objects.filter(pk=self.client_obj.pk).update(total_revenue=Decimal("1.00"))

        found = reconcile_aggregates(fix=False)

        self.assertEqual(len(found), 1)
        self.assertEqual(found[0].stored, Decimal("1.00"))
        self.assertEqual(found[0].expected, Decimal("138.00"))
        self.client_obj.refresh_from_db()
        self.assertEqual(self.client_obj.total_revenue, Decimal("1.00"))

    def test_reconcile_resolves_queued_deltas_without_double_counting(self):
        with mock.patch(
            "billing_core.services.aggregates._apply_update",
            side_effect=DatabaseError("down"),
        ):
            create_time_entry(
                self.user, self.project, "Fix", at(11, 9), end_time=at(11, 10)
            )

        reconcile_aggregates()

        self.assertFalse(
            PendingAggregateDelta.objects.filter(resolved_at__isnull=True).exists()
        )
        self.assertEqual(retry_pending_deltas(), 0)
        self.project.refresh_from_db()
        self.assertEqual(self.project.total_minutes, 150)
        self.assertEqual(self.project.total_earned, Decimal("250.00"))

    def test_owner_scoping(self):
        other = make_user("bob")
        other_client = make_client(other, "Globex")
        Client.objects.filter(pk=other_client.pk).update(project_count=3)

        self.assertEqual(reconcile_aggregates(owner=self.user), [])
        self.assertEqual(len(reconcile_aggregates(owner=other)), 1)


class ReconcileCommandTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.client_obj = make_client(self.user)
        Client.objects.filter(pk=self.client_obj.pk).update(project_count=4)

    def test_dry_run_reports(self):
        out = StringIO()
        call_command("reconcile_aggregates", "--dry-run", stdout=out)

        self.assertIn("project_count: stored=4 expected=0", out.getvalue())
        self.assertIn("dry run", out.getvalue())
        self.client_obj.refresh_from_db()
        self.assertEqual(self.client_obj.project_count, 4)

    def test_fix_for_one_owner(self):
        out = StringIO()
        call_command("reconcile_aggregates", "--owner", "alice", stdout=out)

        self.assertIn("Corrected 1 divergence", out.getvalue())
        self.client_obj.refresh_from_db()
        self.assertEqual(self.client_obj.project_count, 0)


@pytest.mark.django_db
def test_reconcile_task_returns_plain_data():
    user = make_user()
    client = make_client(user)
    Client.objects.filter(pk=client.pk).update(total_revenue=Decimal("10.00"))

    result = reconcile_aggregates_task(owner_id=user.pk)

    assert result == [
        {
            "target_type": "client",
            "target_id": client.pk,
            "field": "total_revenue",
            "stored": "10.00",
            "expected": "0.00",
        }
    ]
