from decimal import Decimal

from django.conf import settings
from django.db import models

from ..managers import OwnerManager

CLIENT_STATUS_CHOICES = [
    ("active", "Active"),
    ("inactive", "Inactive"),
    ("archived", "Archived"),
]


# ---------- Client ----------
# Someone the freelancer works for and bills
class Client(models.Model):
    # Every client belongs to a single user account
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="clients",
    )

    name = models.CharField(max_length=200)
    email = models.EmailField()
    phone = models.CharField(max_length=50, blank=True, default="")
    # The client's organisation, if any
    company_name = models.CharField(max_length=200, blank=True, default="")

    # Postal address
    street = models.CharField(max_length=200, blank=True, default="")
    city = models.CharField(max_length=100, blank=True, default="")
    state = models.CharField(max_length=100, blank=True, default="")
    zip_code = models.CharField(max_length=20, blank=True, default="")
    country = models.CharField(max_length=100, blank=True, default="")

    status = models.CharField(
        max_length=10, choices=CLIENT_STATUS_CHOICES, default="active"
    )
    notes = models.TextField(blank=True, default="")

    # Derived: sum of totals of this client's paid invoices
    total_revenue = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    # Derived: number of projects referencing this client
    project_count = models.IntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce owner scoping
    objects = OwnerManager()

    class Meta:
        indexes = [
            models.Index(fields=["owner", "status"], name="client_owner_status_idx"),
            models.Index(fields=["owner", "total_revenue"], name="client_owner_revenue_idx"),
        ]
        # a delta that would take a total below zero is refused and queued
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_revenue__gte=0) & models.Q(project_count__gte=0),
                name="client_non_negative_aggregates",
            ),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        if self.email:
            self.email = self.email.strip().lower()
        return super().clean()
