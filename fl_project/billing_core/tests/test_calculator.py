from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, override_settings

from ..services.calculator import compute_invoice_totals


class InvoiceCalculatorTests(SimpleTestCase):
    def test_worked_example(self):
        totals = compute_invoice_totals(
            [{"quantity": 1, "rate": "100"}, {"quantity": 2, "rate": "15"}],
            tax_percent=10,
            discount_amount=5,
        )
        self.assertEqual(totals.subtotal, Decimal("130.00"))
        self.assertEqual(totals.tax_amount, Decimal("13.00"))
        self.assertEqual(totals.total, Decimal("138.00"))
        self.assertEqual(totals.item_amounts, [Decimal("100"), Decimal("30")])

    def test_two_lines_with_tax_and_discount(self):
        totals = compute_invoice_totals(
            [{"quantity": 2, "rate": "50"}, {"quantity": 1, "rate": "30"}], 10, 5
        )
        self.assertEqual(totals.subtotal, Decimal("130.00"))
        self.assertEqual(totals.total, Decimal("138.00"))

    def test_caller_supplied_amount_is_ignored(self):
        totals = compute_invoice_totals(
            [{"quantity": 2, "rate": "10", "amount": "999"}], 0, 0
        )
        self.assertEqual(totals.subtotal, Decimal("20.00"))
        self.assertEqual(totals.total, Decimal("20.00"))

    def test_accepts_objects_as_items(self):
        class Line:
            quantity = Decimal("3")
            rate = Decimal("2.50")

        totals = compute_invoice_totals([Line()], 0, 0)
        self.assertEqual(totals.total, Decimal("7.50"))

    def test_rounds_once_at_the_end(self):
        # three half-cent lines: rounding each would give 0.00
        items = [{"quantity": "0.5", "rate": "0.01"}] * 3
        totals = compute_invoice_totals(items, 0, 0)
        self.assertEqual(totals.subtotal, Decimal("0.02"))

    def test_half_even_rounding(self):
        totals = compute_invoice_totals([{"quantity": 1, "rate": "0.125"}], 0, 0)
        self.assertEqual(totals.total, Decimal("0.12"))

    def test_discount_larger_than_total_clamps_to_zero(self):
        totals = compute_invoice_totals([{"quantity": 1, "rate": "10"}], 0, 50)
        self.assertEqual(totals.subtotal, Decimal("10.00"))
        self.assertEqual(totals.total, Decimal("0.00"))

    @override_settings(BILLING_TOTAL_FLOOR="1.00")
    def test_floor_comes_from_settings(self):
        totals = compute_invoice_totals([{"quantity": 1, "rate": "10"}], 0, 50)
        self.assertEqual(totals.total, Decimal("1.00"))

    def test_no_items_gives_zero(self):
        totals = compute_invoice_totals([], 10, 0)
        self.assertEqual(totals.subtotal, Decimal("0.00"))
        self.assertEqual(totals.total, Decimal("0.00"))

    def test_negative_inputs_are_rejected(self):
        with self.assertRaises(ValidationError):
            compute_invoice_totals([{"quantity": -1, "rate": "10"}], 0, 0)
        with self.assertRaises(ValidationError):
            compute_invoice_totals([{"quantity": 1, "rate": "-10"}], 0, 0)
        with self.assertRaises(ValidationError):
            compute_invoice_totals([{"quantity": 1, "rate": "10"}], -5, 0)
        with self.assertRaises(ValidationError):
            compute_invoice_totals([{"quantity": 1, "rate": "10"}], 0, -1)

    def test_malformed_numbers_are_rejected(self):
        with self.assertRaises(ValidationError):
            compute_invoice_totals([{"quantity": "two", "rate": "10"}], 0, 0)
        with self.assertRaises(ValidationError):
            compute_invoice_totals([{"quantity": 1, "rate": [10]}], 0, 0)
        with self.assertRaises(ValidationError):
            compute_invoice_totals([{"quantity": 1, "rate": "10"}], "ten", 0)
        with self.assertRaises(ValidationError):
            compute_invoice_totals([{"quantity": 1, "rate": "10"}], 0, "NaN")
