from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.test import TestCase

from ..exceptions import ConflictError
from ..models import Client, PendingAggregateDelta, Project, TimeEntry
from ..services import (apply_delta, create_time_entry, delete_project,
                        retry_pending_deltas, start_timer, stop_timer,
                        update_invoice, update_invoice_status, update_project)
from .utils import at, make_client, make_invoice, make_project, make_user

PATCH_TARGET = "billing_core.services.aggregates._apply_update"


class ProjectCountTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.acme = make_client(self.user, "Acme")
        self.globex = make_client(self.user, "Globex")

    def counts(self):
        return {
            c.name: c.project_count
            for c in Client.objects.for_owner(self.user)
        }

    def test_create_move_delete(self):
        project = make_project(self.user, self.acme)
        make_project(self.user, self.acme, name="App")
        self.assertEqual(self.counts(), {"Acme": 2, "Globex": 0})

        update_project(self.user, project.pk, client=self.globex.pk)
        self.assertEqual(self.counts(), {"Acme": 1, "Globex": 1})

        delete_project(self.user, project.pk)
        self.assertEqual(self.counts(), {"Acme": 1, "Globex": 0})

    def test_move_carries_time_entries_to_the_new_client(self):
        project = make_project(self.user, self.acme)
        entry = create_time_entry(
            self.user, project, "Fix", at(11, 9), end_time=at(11, 10)
        )

        update_project(self.user, project.pk, client=self.globex.pk)

        entry.refresh_from_db()
        self.assertEqual(entry.client_id, self.globex.pk)
        # billable on the new client's invoice, not on the old one
        invoice = make_invoice(self.user, self.globex, time_entries=[entry.pk])
        entry.refresh_from_db()
        self.assertEqual(entry.invoice_id, invoice.pk)

    def test_billed_project_stays_with_its_client(self):
        project = make_project(self.user, self.acme)
        invoice = make_invoice(self.user, self.acme, project=project)

        with self.assertRaises(ConflictError):
            update_project(self.user, project.pk, client=self.globex.pk)

        self.assertEqual(Project.objects.get(pk=project.pk).client_id, self.acme.pk)
        self.assertEqual(self.counts(), {"Acme": 1, "Globex": 0})
        # the old client's invoice is still editable
        update_invoice(self.user, invoice.pk, notes="thanks")

    def test_project_with_invoiced_entries_stays_with_its_client(self):
        project = make_project(self.user, self.acme)
        entry = create_time_entry(
            self.user, project, "Fix", at(11, 9), end_time=at(11, 10)
        )
        make_invoice(self.user, self.acme, time_entries=[entry.pk])

        with self.assertRaises(ConflictError):
            update_project(self.user, project.pk, client=self.globex.pk)
        entry.refresh_from_db()
        self.assertEqual(entry.client_id, self.acme.pk)

    def test_derived_fields_cannot_be_written_through_services(self):
        project = make_project(self.user, self.acme)
        with self.assertRaises(ValidationError):
            update_project(self.user, project.pk, total_minutes=999)
        with self.assertRaises(ValidationError):
            make_client(self.user, "Initech", total_revenue=Decimal("5"))


class ApplyDeltaTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.client_obj = make_client(self.user)

    def test_unknown_field_is_a_programming_error(self):
        with self.assertRaises(ValueError):
            apply_delta("client", self.client_obj.pk, "test", total_minutes=5)

    def test_zero_delta_is_a_noop(self):
        with mock.patch(PATCH_TARGET) as update:
            self.assertTrue(
                apply_delta("client", self.client_obj.pk, "test", project_count=0)
            )
        update.assert_not_called()

    def test_delta_below_zero_is_refused_and_queued(self):
        with self.assertLogs("billing_core.services.aggregates", "WARNING"):
            applied = apply_delta(
                "client", self.client_obj.pk, "project_deleted", project_count=-1
            )

        self.assertFalse(applied)
        self.client_obj.refresh_from_db()
        self.assertEqual(self.client_obj.project_count, 0)
        self.assertEqual(PendingAggregateDelta.objects.get().deltas, {"project_count": -1})

    def test_missing_target_is_skipped(self):
        self.assertTrue(
            apply_delta("client", self.client_obj.pk + 1000, "test", project_count=1)
        )
        self.assertFalse(PendingAggregateDelta.objects.exists())


class AggregateFailureTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.client_obj = make_client(self.user)
        self.project = make_project(self.user, self.client_obj, rate="100.00")

    def test_failed_delta_is_queued_and_primary_write_kept(self):
        entry = start_timer(self.user, self.project, "Design", now=at(15, 10))

        with mock.patch(PATCH_TARGET, side_effect=DatabaseError("deadlock")):
            with self.assertLogs("billing_core.services.aggregates", "WARNING"):
                entry = stop_timer(entry.pk, owner=self.user, now=at(15, 11, 30))

        # the stop itself went through
        stored = TimeEntry.objects.get(pk=entry.pk)
        self.assertFalse(stored.is_running)
        self.assertEqual(stored.duration, 90)

        # the total did not move, the delta waits in the queue
        self.project.refresh_from_db()
        self.assertEqual(self.project.total_minutes, 0)
        pending = PendingAggregateDelta.objects.get()
        self.assertEqual(pending.event, "timer_stopped")
        self.assertEqual(pending.target_type, "project")
        self.assertEqual(pending.target_id, self.project.pk)
        self.assertEqual(pending.deltas, {"total_minutes": 90, "total_earned": "150.00"})
        self.assertIn("deadlock", pending.error)

        # retry heals it, exactly once
        self.assertEqual(retry_pending_deltas(), 1)
        self.assertEqual(retry_pending_deltas(), 0)
        self.project.refresh_from_db()
        self.assertEqual(self.project.total_minutes, 90)
        self.assertEqual(self.project.total_earned, Decimal("150.00"))
        pending.refresh_from_db()
        self.assertIsNotNone(pending.resolved_at)

    def test_failed_revenue_credit_keeps_invoice_paid(self):
        invoice = make_invoice(self.user, self.client_obj)

        with mock.patch(PATCH_TARGET, side_effect=DatabaseError("locked")):
            invoice = update_invoice_status(self.user, invoice.pk, "paid")

        self.assertEqual(invoice.status, "paid")
        self.client_obj.refresh_from_db()
        self.assertEqual(self.client_obj.total_revenue, Decimal("0.00"))
        self.assertEqual(
            PendingAggregateDelta.objects.get().deltas, {"total_revenue": "138.00"}
        )

        retry_pending_deltas()
        self.client_obj.refresh_from_db()
        self.assertEqual(self.client_obj.total_revenue, Decimal("138.00"))

    def test_retry_that_fails_again_stays_queued(self):
        with mock.patch(PATCH_TARGET, side_effect=DatabaseError("down")):
            make_project(self.user, self.client_obj, name="App")
            self.assertEqual(retry_pending_deltas(), 0)

        pending = PendingAggregateDelta.objects.get()
        self.assertEqual(pending.attempts, 2)
        self.assertIsNone(pending.resolved_at)

        self.assertEqual(retry_pending_deltas(), 1)
        self.client_obj.refresh_from_db()
        self.assertEqual(self.client_obj.project_count, 2)
