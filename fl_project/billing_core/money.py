from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP, Decimal, InvalidOperation

from django.core.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
MINUTES_PER_HOUR = Decimal(60)


def as_decimal(value):
    """Coerce ints, strings and floats to Decimal without binary noise.
    Anything that is not a finite number is a ValidationError."""
    if value is None:
        return ZERO
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{value!r} is not a number")
    if not number.is_finite():
        raise ValidationError(f"{value!r} is not a number")
    return number


def to_money(value):
    """Round a money amount to cents, banker's rounding."""
    return as_decimal(value).quantize(CENT, rounding=ROUND_HALF_EVEN)


def minutes_between(start, end):
    """Whole minutes from start to end, half a minute rounds up."""
    seconds = Decimal(str((end - start).total_seconds()))
    return int((seconds / Decimal(60)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def amount_for_minutes(minutes, hourly_rate):
    return to_money(Decimal(minutes) / MINUTES_PER_HOUR * as_decimal(hourly_rate))
