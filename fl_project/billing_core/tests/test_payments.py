from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from ..exceptions import ConflictError, NotFound
from ..models import Payment
from ..services import record_payment, send_invoice, update_invoice_status
from .utils import at, make_client, make_invoice, make_user


class RecordPaymentTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.client_obj = make_client(self.user)
        self.invoice = make_invoice(self.user, self.client_obj)
        send_invoice(self.user, self.invoice.pk)

    def assertRevenue(self, expected):
        self.client_obj.refresh_from_db()
        self.assertEqual(self.client_obj.total_revenue, Decimal(expected))

    def test_full_payment_settles_the_invoice(self):
        payment = record_payment(
            self.invoice.pk,
            owner=self.user,
            method="bank_transfer",
            transaction_id="tx-1",
            payment_date=at(22, 9),
        )

        self.assertEqual(payment.amount, Decimal("138.00"))
        self.assertEqual(payment.client_id, self.client_obj.pk)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, "paid")
        self.assertEqual(self.invoice.paid_date, at(22, 9))
        self.assertEqual(self.invoice.payment_method, "bank_transfer")
        self.assertRevenue("138.00")

    def test_repeated_confirmation_is_recorded_once(self):
        first = record_payment(self.invoice.pk, transaction_id="tx-1")
        again = record_payment(self.invoice.pk, transaction_id="tx-1")

        self.assertEqual(first.pk, again.pk)
        self.assertEqual(Payment.objects.count(), 1)
        self.assertRevenue("138.00")

    def test_partial_payments_settle_when_covered(self):
        record_payment(self.invoice.pk, amount="100.00", transaction_id="tx-1")
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, "sent")
        self.assertRevenue("0.00")

        record_payment(self.invoice.pk, amount="38.00", transaction_id="tx-2")
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, "paid")
        self.assertRevenue("138.00")

    def test_pending_payment_does_not_settle(self):
        record_payment(self.invoice.pk, status="pending", transaction_id="tx-1")
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, "sent")
        self.assertRevenue("0.00")

    def test_completed_payment_on_paid_invoice_is_a_conflict(self):
        update_invoice_status(self.user, self.invoice.pk, "paid")
        with self.assertRaises(ConflictError):
            record_payment(self.invoice.pk, transaction_id="tx-late")
        self.assertRevenue("138.00")

    def test_cancelled_invoice_cannot_be_paid(self):
        update_invoice_status(self.user, self.invoice.pk, "cancelled")
        with self.assertRaises(ConflictError):
            record_payment(self.invoice.pk)
        self.assertEqual(Payment.objects.count(), 0)

    def test_invalid_input(self):
        with self.assertRaises(ValidationError):
            record_payment(self.invoice.pk, amount="0")
        with self.assertRaises(ValidationError):
            record_payment(self.invoice.pk, amount="a lot")
        with self.assertRaises(ValidationError):
            record_payment(self.invoice.pk, status="lost")
        with self.assertRaises(NotFound):
            record_payment(self.invoice.pk + 1000)

    def test_owner_scoping(self):
        with self.assertRaises(NotFound):
            record_payment(self.invoice.pk, owner=make_user("bob"))


class ZeroTotalInvoiceTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.client_obj = make_client(self.user)
        # discount larger than the work: total clamps to 0.00
        self.invoice = make_invoice(
            self.user,
            self.client_obj,
            items=[{"description": "Favour", "quantity": 1, "rate": "10"}],
            tax=0,
            discount=50,
        )

    def test_settles_without_a_payment_row(self):
        self.assertEqual(self.invoice.total, Decimal("0.00"))

        self.assertIsNone(record_payment(self.invoice.pk, owner=self.user))

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, "paid")
        self.assertFalse(Payment.objects.exists())
        self.client_obj.refresh_from_db()
        self.assertEqual(self.client_obj.total_revenue, Decimal("0.00"))

    def test_explicit_zero_amount_is_still_invalid(self):
        with self.assertRaises(ValidationError):
            record_payment(self.invoice.pk, amount="0")
