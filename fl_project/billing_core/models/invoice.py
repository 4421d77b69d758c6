from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from ..exceptions import InvalidTransition
from ..managers import InvoiceManager
from .client import Client
from .project import Project

INV_STATUS_CHOICES = [
    ("draft", "Draft"),
    ("sent", "Sent"),
    ("paid", "Paid"),
    ("overdue", "Overdue"),
    ("cancelled", "Cancelled"),
]

PAYMENT_METHOD_CHOICES = [
    ("stripe", "Stripe"),
    ("bank_transfer", "Bank transfer"),
    ("cash", "Cash"),
    ("check", "Check"),
    ("other", "Other"),
]

# Current state vs. allowed next states
ALLOWED_TRANSITIONS = {
    "draft": ["sent", "paid", "cancelled"],
    "sent": ["paid", "overdue", "cancelled"],
    "overdue": ["paid", "cancelled"],
    "paid": [],  # terminal
    "cancelled": [],  # terminal
}

# Statuses whose amounts can no longer change
LOCKED_STATUSES = ("paid", "cancelled")


class Invoice(models.Model):  # Represents an invoice sent to a client

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="invoices",
    )
    client = models.ForeignKey(
        Client,
        # prevent deleting client who has an invoice
        on_delete=models.PROTECT,
        related_name="invoices",
    )
    # Optional: invoice may cover one project
    project = models.ForeignKey(
        Project,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="invoices",
    )

    # Issued by the numbering sequence (e.g. "INV-00042"), never reused
    invoice_number = models.CharField(max_length=32, unique=True)
    status = models.CharField(
        max_length=10, choices=INV_STATUS_CHOICES, default="draft"
    )
    """ Workflow:
        draft = not yet sent.
        sent = issued, awaiting payment.
        overdue = sent and due date passed.
        paid = fully settled (terminal).
        cancelled = voided (terminal). """

    issue_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField()

    currency_code = models.CharField(max_length=10, default="USD")
    # Sum of item amounts
    subtotal = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    # Percentage, e.g. 10 for 10%
    tax = models.DecimalField(
        max_digits=6, decimal_places=2, default=Decimal("0.00")
    )
    # Flat amount taken off after tax
    discount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    total = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    notes = models.TextField(blank=True, default="")

    # Set exactly when status becomes "paid"
    paid_date = models.DateTimeField(null=True, blank=True)
    payment_method = models.CharField(
        max_length=20, choices=PAYMENT_METHOD_CHOICES, default="stripe"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = InvoiceManager()

    class Meta:
        indexes = [
            models.Index(fields=["owner", "status"], name="inv_owner_status_idx"),
            models.Index(fields=["owner", "paid_date"], name="inv_owner_paid_date_idx"),
            models.Index(fields=["client", "status"], name="inv_client_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(tax__gte=0) & models.Q(discount__gte=0),
                name="inv_non_negative_adjustments",
            ),
        ]

    def __str__(self):
        return f"Inv {self.invoice_number or self.pk}"

    @property
    def is_locked(self):
        return self.status in LOCKED_STATUSES

    """ Ensure invoice's stored totals are always
    in sync with its items, tax and discount """

    def recalc_totals(self):
        # lazy import to avoid circular import at module load time
        from ..services.calculator import compute_invoice_totals

        # guard if no pk: there are no items yet
        items = list(self.items.all()) if self.pk else []
        totals = compute_invoice_totals(
            [{"quantity": i.quantity, "rate": i.rate} for i in items],
            self.tax,
            self.discount,
        )
        self.subtotal = totals.subtotal
        self.total = totals.total
        return totals

    def clean(self):
        if self.due_date and self.issue_date and self.due_date < self.issue_date:
            raise ValidationError("due_date cannot be before issue_date")
        if self.client_id and self.owner_id:
            if Client.objects.only("owner_id").get(pk=self.client_id).owner_id != self.owner_id:
                raise ValidationError("Invoice.client must belong to the same owner")
        if self.project_id and self.client_id:
            if Project.objects.only("client_id").get(pk=self.project_id).client_id != self.client_id:
                raise ValidationError("Invoice.project must belong to Invoice.client")

    def transition_to(self, new_status, now=None):
        """Move to new_status and persist it. Returns the previous status.

        Asking for the current status again is a no-op, so re-saving a
        paid invoice as paid changes nothing."""
        if new_status not in ALLOWED_TRANSITIONS:
            raise ValidationError(f"Unknown invoice status {new_status!r}")
        previous = self.status
        if new_status == previous:
            return previous
        # Look up what states are allowed from current self.status
        if new_status not in ALLOWED_TRANSITIONS.get(previous, []):
            raise InvalidTransition(f"Cannot go from {previous} to {new_status}")

        self.status = new_status
        if new_status == "paid":
            self.paid_date = now or timezone.now()
        self.save(update_fields=["status", "paid_date", "updated_at"])
        return previous


class InvoiceItem(models.Model):  # One billed line on an invoice

    invoice = models.ForeignKey(
        Invoice, on_delete=models.CASCADE, related_name="items")
    # Keeps the caller's ordering
    position = models.PositiveIntegerField(default=0)
    description = models.CharField(max_length=500)

    # quantity × rate = amount
    quantity = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("1")
    )
    rate = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    # Unrounded product; rounding happens once on the invoice total
    amount = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0.0000")
    )

    class Meta:
        ordering = ("invoice", "position", "id")
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0) & models.Q(rate__gte=0),
                name="inv_item_non_negative_amounts",
            ),
        ]

    def __str__(self):
        return f"{self.invoice}: {self.description} ({self.amount})"

    def clean(self):
        if self.quantity is not None and self.quantity < 0:
            raise ValidationError("Quantity must be >= 0")
        if self.rate is not None and self.rate < 0:
            raise ValidationError("Rate must be >= 0")
        # Paid and cancelled invoices are immutable
        if self.invoice_id:
            status = Invoice.objects.only("status").get(pk=self.invoice_id).status
            if status in LOCKED_STATUSES:
                raise ValidationError(f"Cannot modify items of a {status} invoice")

    """ Ensure no inconsistent item can ever be persisted """

    def save(self, *args, **kwargs):
        # compute amount always, never trusted from the caller
        self.amount = (self.quantity or Decimal("0")) * (self.rate or Decimal("0"))
        self.full_clean()
        return super().save(*args, **kwargs)
