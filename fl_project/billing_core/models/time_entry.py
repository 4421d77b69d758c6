from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from ..managers import TimeEntryManager
from ..money import ZERO, amount_for_minutes, minutes_between
from .client import Client
from .project import Project


# ---------- Time entry ----------
# One tracked work session; a running timer is an entry without end_time
class TimeEntry(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="time_entries",
    )
    project = models.ForeignKey(
        Project, on_delete=models.CASCADE, related_name="time_entries"
    )
    # Copied from project.client so reports don't need the join
    client = models.ForeignKey(
        Client, on_delete=models.PROTECT, related_name="time_entries"
    )

    description = models.CharField(max_length=500)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField(null=True, blank=True)

    # Minutes, derived from start/end
    duration = models.IntegerField(default=0)
    # Snapshot of project.hourly_rate when the entry was created
    hourly_rate = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    # Derived: duration / 60 * hourly_rate
    amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    billable = models.BooleanField(default=True)
    invoiced = models.BooleanField(default=False)
    invoice = models.ForeignKey(
        "Invoice",
        null=True,
        blank=True,
        # a deleted invoice releases its entries for billing again
        on_delete=models.SET_NULL,
        related_name="time_entries",
    )
    tags = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TimeEntryManager()

    class Meta:
        ordering = ("-start_time",)
        indexes = [
            models.Index(fields=["owner", "start_time"], name="time_entry_owner_start_idx"),
            models.Index(fields=["project", "end_time"], name="time_entry_project_end_idx"),
        ]
        constraints = [
            # At most one running timer per user
            models.UniqueConstraint(
                fields=["owner"],
                condition=models.Q(end_time__isnull=True),
                name="uq_time_entry_one_running_per_owner",
            ),
            models.CheckConstraint(
                condition=models.Q(hourly_rate__gte=0),
                name="time_entry_non_negative_rate",
            ),
        ]

    def __str__(self):
        state = "running" if self.is_running else f"{self.duration} min"
        return f"{self.project} - {self.description} ({state})"

    @property
    def is_running(self):
        return self.end_time is None

    @property
    def hours(self):
        return Decimal(self.duration) / Decimal(60)

    def contribution(self):
        """What this entry adds to its project's totals: (project_id, minutes, amount).
        A running entry hasn't accrued anything yet."""
        if self.is_running:
            return self.project_id, 0, ZERO
        return self.project_id, self.duration, self.amount

    def elapsed_minutes(self, now=None):
        end = self.end_time or now or timezone.now()
        return minutes_between(self.start_time, end)

    def recalc_totals(self):
        """Recompute duration and amount from start/end and the rate snapshot."""
        if self.is_running:
            self.duration = 0
            self.amount = ZERO
            return
        self.duration = minutes_between(self.start_time, self.end_time)
        self.amount = amount_for_minutes(self.duration, self.hourly_rate)

    def clean(self):
        if self.end_time is not None and self.end_time < self.start_time:
            raise ValidationError("end_time cannot be before start_time")
        if self.hourly_rate is not None and self.hourly_rate < 0:
            raise ValidationError("Hourly rate must be >= 0")

    def save(self, *args, **kwargs):
        # derived fields are never trusted from the caller
        self.recalc_totals()
        if self.project_id and not self.client_id:
            self.client_id = (
                Project.objects.only("client_id").get(pk=self.project_id).client_id
            )
        return super().save(*args, **kwargs)
