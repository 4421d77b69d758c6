import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from ..exceptions import ConflictError
from ..models import Payment
from ..models.payment import PAYMENT_STATUS_CHOICES
from ..money import as_decimal, to_money
from .audit_helper import log_action
from .invoices import apply_status_change, get_invoice_for_update

logger = logging.getLogger(__name__)


# ----------------------------
# Payment-related workflows
# ----------------------------
def completed_total(invoice):
    return invoice.payments.filter(status="completed").aggregate(
        total=Coalesce(Sum("amount"), Decimal("0.00"))
    )["total"]


def record_payment(
    invoice_id,
    amount=None,
    method="stripe",
    owner=None,
    transaction_id="",
    gateway_reference="",
    status="completed",
    notes="",
    currency=None,
    payment_date=None,
):
    """
    Record a payment confirmation (gateway callback or manual entry).

    Once completed payments cover the invoice total, the invoice goes down
    the same "-> paid" path as a manual status change, so the client's
    revenue is credited exactly once. A callback repeated with the same
    transaction_id returns the payment recorded the first time.
    An invoice whose total is zero has nothing to collect: with no amount
    given it is marked paid directly and None is returned.
    """
    if status not in dict(PAYMENT_STATUS_CHOICES):
        raise ValidationError(f"Unknown payment status {status!r}")

    with transaction.atomic():
        # Lock the invoice row until the transaction finishes
        invoice = get_invoice_for_update(owner, invoice_id)

        # idempotency: don't record the same confirmation twice
        if transaction_id:
            existing = invoice.payments.filter(transaction_id=transaction_id).first()
            if existing is not None:
                logger.info(
                    "Duplicate payment confirmation %s for %s ignored",
                    transaction_id,
                    invoice.invoice_number,
                )
                return existing

        if invoice.status == "cancelled":
            raise ConflictError(f"Invoice {invoice.invoice_number} is cancelled")
        if invoice.status == "paid" and status == "completed":
            raise ConflictError(f"Invoice {invoice.invoice_number} is already paid")

        if amount is None and invoice.total <= 0 and status == "completed":
            apply_status_change(invoice, "paid", now=payment_date)
            logger.info("%s has a zero total, marked paid", invoice.invoice_number)
            return None

        amount = invoice.total if amount is None else as_decimal(amount)
        if amount <= 0:
            raise ValidationError("Payment amount must be positive")

        payment = Payment(
            owner=invoice.owner,
            invoice=invoice,
            client_id=invoice.client_id,
            amount=to_money(amount),
            currency=currency or invoice.currency_code,
            method=method,
            status=status,
            transaction_id=transaction_id or "",
            gateway_reference=gateway_reference or "",
            notes=notes,
            payment_date=payment_date or timezone.now(),
        )
        payment.full_clean()
        payment.save()

        log_action(
            action="record_payment",
            instance=payment,
            changes={
                "invoice_id": invoice.pk,
                "amount": str(payment.amount),
                "method": method,
                "status": status,
            },
        )

        # Settle the invoice once completed payments cover it
        if status == "completed" and completed_total(invoice) >= invoice.total:
            if invoice.payment_method != method:
                invoice.payment_method = method
                invoice.save(update_fields=["payment_method", "updated_at"])
            apply_status_change(invoice, "paid", now=payment.payment_date)

    return payment
