from decimal import Decimal

from django.conf import settings

""" App-level settings with their defaults.
    Read lazily so override_settings() in tests takes effect. """


def invoice_prefix():
    return getattr(settings, "BILLING_INVOICE_PREFIX", "INV-")


def invoice_number_width():
    return int(getattr(settings, "BILLING_INVOICE_NUMBER_WIDTH", 5))


def total_floor():
    return Decimal(str(getattr(settings, "BILLING_TOTAL_FLOOR", "0.00")))


def revenue_series_months():
    return int(getattr(settings, "BILLING_REVENUE_SERIES_MONTHS", 6))


def top_clients_limit():
    return int(getattr(settings, "BILLING_TOP_CLIENTS_LIMIT", 5))


def default_currency():
    return getattr(settings, "BILLING_DEFAULT_CURRENCY", "USD")
