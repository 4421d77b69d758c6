from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from ..managers import OwnerManager
from .client import Client

PROJECT_STATUS_CHOICES = [
    ("planning", "Planning"),
    ("in-progress", "In progress"),
    ("on-hold", "On hold"),
    ("completed", "Completed"),
    ("cancelled", "Cancelled"),
]

PROJECT_PRIORITY_CHOICES = [
    ("low", "Low"),
    ("medium", "Medium"),
    ("high", "High"),
    ("urgent", "Urgent"),
]

BILLING_TYPE_CHOICES = [
    ("hourly", "Hourly"),
    ("fixed", "Fixed price"),
    ("retainer", "Retainer"),
]


# ---------- Project ----------
class Project(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="projects",
    )
    # A project always belongs to exactly one client
    client = models.ForeignKey(
        Client,
        # clients with projects cannot be deleted
        on_delete=models.PROTECT,
        related_name="projects",
    )

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    status = models.CharField(
        max_length=20, choices=PROJECT_STATUS_CHOICES, default="planning"
    )
    priority = models.CharField(
        max_length=10, choices=PROJECT_PRIORITY_CHOICES, default="medium"
    )
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)

    budget = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    # Copied onto each new time entry; later changes don't touch old entries
    hourly_rate = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    billing_type = models.CharField(
        max_length=10, choices=BILLING_TYPE_CHOICES, default="hourly"
    )
    tags = models.JSONField(default=list, blank=True)

    # Derived: sum of durations of completed time entries (minutes)
    total_minutes = models.IntegerField(default=0)
    # Derived: sum of amounts of completed time entries
    total_earned = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OwnerManager()

    class Meta:
        indexes = [
            models.Index(fields=["owner", "status"], name="project_owner_status_idx"),
            models.Index(fields=["owner", "client"], name="project_owner_client_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(hourly_rate__gte=0) & models.Q(budget__gte=0),
                name="project_non_negative_rates",
            ),
            models.CheckConstraint(
                condition=models.Q(total_minutes__gte=0) & models.Q(total_earned__gte=0),
                name="project_non_negative_aggregates",
            ),
        ]

    def __str__(self):
        return self.name

    @property
    def total_hours(self):
        """Hours tracked on this project, exact to the minute."""
        return Decimal(self.total_minutes) / Decimal(60)

    def clean(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError("end_date cannot be before start_date")
        # Tenant safety: project and client must share an owner
        if self.client_id and self.owner_id:
            client_owner = (
                Client.objects.only("owner_id").get(pk=self.client_id).owner_id
            )
            if client_owner != self.owner_id:
                raise ValidationError("Project.client must belong to the same owner")
