from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from ..exceptions import ConflictError, NotFound
from ..models import Project
from ..services import (create_time_entry, delete_time_entry, stop_timer,
                        update_time_entry)
from ..services.reconciliation import expected_project_totals
from .utils import at, make_client, make_invoice, make_project, make_user


class TimeEntryTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.client_obj = make_client(self.user)
        self.project = make_project(self.user, self.client_obj, rate="100.00")

    def assertTotals(self, project, minutes, earned):
        project.refresh_from_db()
        self.assertEqual(project.total_minutes, minutes)
        self.assertEqual(project.total_earned, Decimal(earned))

    def assertConsistent(self, *projects):
        for project in projects:
            project.refresh_from_db()
            expected = expected_project_totals(project)
            self.assertEqual(project.total_minutes, expected["total_minutes"])
            self.assertEqual(project.total_earned, expected["total_earned"])

    def test_completed_entry_counts_immediately(self):
        entry = create_time_entry(
            self.user, self.project, "Build", at(10, 9), end_time=at(10, 10)
        )
        self.assertEqual(entry.duration, 60)
        self.assertEqual(entry.client_id, self.client_obj.pk)
        self.assertTotals(self.project, 60, "100.00")

    def test_entry_without_end_time_starts_the_timer(self):
        entry = create_time_entry(self.user, self.project, "Build", at(10, 9))
        self.assertTrue(entry.is_running)
        with self.assertRaises(ConflictError):
            create_time_entry(self.user, self.project, "Other", at(10, 9, 30))

        stop_timer(entry.pk, owner=self.user, now=at(10, 9, 30))
        self.assertTotals(self.project, 30, "50.00")

    def test_end_before_start_is_rejected(self):
        with self.assertRaises(ValidationError):
            create_time_entry(
                self.user, self.project, "Build", at(10, 10), end_time=at(10, 9)
            )
        self.assertTotals(self.project, 0, "0.00")

    def test_editing_applies_only_the_difference(self):
        entry = create_time_entry(
            self.user, self.project, "Build", at(10, 9), end_time=at(10, 10)
        )
        create_time_entry(
            self.user, self.project, "Test", at(11, 9), end_time=at(11, 9, 30)
        )

        update_time_entry(self.user, entry.pk, end_time=at(10, 10, 30))
        self.assertTotals(self.project, 120, "200.00")

        update_time_entry(self.user, entry.pk, hourly_rate=Decimal("50.00"))
        # 90 min at 50 + 30 min at 100
        self.assertTotals(self.project, 120, "125.00")
        self.assertConsistent(self.project)

    def test_moving_an_entry_moves_its_totals(self):
        other = make_project(self.user, self.client_obj, name="App")
        entry = create_time_entry(
            self.user, self.project, "Build", at(10, 9), end_time=at(10, 10)
        )

        update_time_entry(self.user, entry.pk, project=other.pk)

        self.assertTotals(self.project, 0, "0.00")
        self.assertTotals(other, 60, "100.00")
        self.assertConsistent(self.project, other)

    def test_description_edit_leaves_totals_alone(self):
        entry = create_time_entry(
            self.user, self.project, "Build", at(10, 9), end_time=at(10, 10)
        )
        update_time_entry(self.user, entry.pk, description="Build v2")
        self.assertTotals(self.project, 60, "100.00")

    def test_stopped_entry_cannot_be_reopened(self):
        entry = create_time_entry(
            self.user, self.project, "Build", at(10, 9), end_time=at(10, 10)
        )
        with self.assertRaises(ValidationError):
            update_time_entry(self.user, entry.pk, end_time=None)

    def test_invoiced_entry_is_frozen(self):
        entry = create_time_entry(
            self.user, self.project, "Build", at(10, 9), end_time=at(10, 10)
        )
        make_invoice(self.user, self.client_obj, time_entries=[entry.pk])

        with self.assertRaises(ConflictError):
            update_time_entry(self.user, entry.pk, end_time=at(10, 11))
        entry = update_time_entry(self.user, entry.pk, description="Build (billed)")
        self.assertEqual(entry.duration, 60)

    def test_unknown_fields_are_rejected(self):
        entry = create_time_entry(
            self.user, self.project, "Build", at(10, 9), end_time=at(10, 10)
        )
        with self.assertRaises(ValidationError):
            update_time_entry(self.user, entry.pk, amount=Decimal("1.00"))

    def test_deleting_takes_the_entry_off_the_project(self):
        entry = create_time_entry(
            self.user, self.project, "Build", at(10, 9), end_time=at(10, 10)
        )
        delete_time_entry(self.user, entry.pk)
        self.assertTotals(self.project, 0, "0.00")

        with self.assertRaises(NotFound):
            delete_time_entry(self.user, entry.pk)

    def test_totals_stay_consistent_over_a_mixed_sequence(self):
        app = make_project(self.user, self.client_obj, name="App", rate="80.00")
        a = create_time_entry(self.user, self.project, "A", at(3, 9), end_time=at(3, 10))
        b = create_time_entry(self.user, app, "B", at(4, 9), end_time=at(4, 9, 45))
        c = create_time_entry(self.user, self.project, "C", at(5, 9))
        stop_timer(c.pk, owner=self.user, now=at(5, 11, 10))
        update_time_entry(self.user, a.pk, project=app.pk)
        update_time_entry(self.user, b.pk, start_time=at(4, 8, 50))
        delete_time_entry(self.user, c.pk)
        create_time_entry(self.user, self.project, "D", at(6, 9), end_time=at(6, 9, 20))

        self.assertConsistent(self.project, app)
        self.assertEqual(
            Project.objects.get(pk=app.pk).total_minutes, 60 + 55
        )
