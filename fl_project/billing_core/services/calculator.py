from collections import namedtuple
from decimal import Decimal

from django.core.exceptions import ValidationError

from .. import conf
from ..money import as_decimal, to_money

InvoiceTotals = namedtuple(
    "InvoiceTotals", ["subtotal", "tax_amount", "total", "item_amounts"]
)


def _item_value(item, key):
    if isinstance(item, dict):
        return item.get(key)
    return getattr(item, key, None)


def compute_invoice_totals(items, tax_percent, discount_amount, floor=None):
    """
    Pure invoice arithmetic.

      item amount = quantity × rate   (any caller-supplied amount is ignored)
      subtotal    = Σ item amounts
      total       = subtotal + subtotal × tax / 100 − discount, never below floor

    Money is rounded half-even to cents only when subtotal and total are
    produced, so per-line rounding errors can't add up.
    """
    tax_percent = as_decimal(tax_percent)
    discount_amount = as_decimal(discount_amount)
    if tax_percent < 0:
        raise ValidationError("Tax must be >= 0")
    if discount_amount < 0:
        raise ValidationError("Discount must be >= 0")
    floor = conf.total_floor() if floor is None else as_decimal(floor)

    item_amounts = []
    for item in items:
        quantity = as_decimal(_item_value(item, "quantity"))
        rate = as_decimal(_item_value(item, "rate"))
        if quantity < 0 or rate < 0:
            raise ValidationError("Item quantity and rate must be >= 0")
        item_amounts.append(quantity * rate)

    raw_subtotal = sum(item_amounts, Decimal("0"))
    tax_amount = raw_subtotal * tax_percent / Decimal(100)
    raw_total = raw_subtotal + tax_amount - discount_amount

    total = to_money(raw_total)
    if total < floor:
        total = to_money(floor)

    return InvoiceTotals(
        subtotal=to_money(raw_subtotal),
        tax_amount=to_money(tax_amount),
        total=total,
        item_amounts=item_amounts,
    )
