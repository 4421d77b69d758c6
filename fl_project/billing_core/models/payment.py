from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from ..managers import OwnerManager
from .client import Client
from .invoice import PAYMENT_METHOD_CHOICES, Invoice

PAYMENT_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("completed", "Completed"),
    ("failed", "Failed"),
    ("refunded", "Refunded"),
]


# ---------- Payment ----------
# Confirmation that money for an invoice arrived (gateway or manual)
class Payment(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payments",
    )
    invoice = models.ForeignKey(
        Invoice, on_delete=models.CASCADE, related_name="payments"
    )
    client = models.ForeignKey(
        Client, on_delete=models.PROTECT, related_name="payments"
    )

    amount = models.DecimalField(max_digits=14, decimal_places=2)
    currency = models.CharField(max_length=10, default="USD")
    method = models.CharField(
        max_length=20, choices=PAYMENT_METHOD_CHOICES, default="stripe"
    )
    status = models.CharField(
        max_length=10, choices=PAYMENT_STATUS_CHOICES, default="pending"
    )
    # Our own reference (bank transfer id, cheque number, ...)
    transaction_id = models.CharField(max_length=128, blank=True, default="")
    # Opaque id handed back by the payment gateway
    gateway_reference = models.CharField(max_length=128, blank=True, default="")
    payment_date = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    objects = OwnerManager()

    class Meta:
        ordering = ("-payment_date",)
        indexes = [
            models.Index(fields=["owner", "payment_date"], name="payment_owner_date_idx"),
        ]
        constraints = [
            # A gateway callback delivered twice must not record two payments
            models.UniqueConstraint(
                fields=["invoice", "transaction_id"],
                condition=~models.Q(transaction_id=""),
                name="uq_payment_invoice_transaction",
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gt=Decimal("0")),
                name="payment_positive_amount",
            ),
        ]

    def __str__(self):
        return f"{self.invoice} {self.amount} {self.currency} ({self.status})"
