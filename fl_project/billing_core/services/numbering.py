from django.db import transaction
from django.db.models import F

from .. import conf
from ..models import InvoiceSequence

INVOICE_SEQUENCE = "invoice"


def format_invoice_number(value):
    return f"{conf.invoice_prefix()}{value:0{conf.invoice_number_width()}d}"


def next_invoice_number(sequence_name=INVOICE_SEQUENCE):
    """
    Issue the next invoice number, e.g. "INV-00001".

    The counter row is bumped with one UPDATE ... SET last_value = last_value + 1,
    which the database serialises, and read back under the same row lock.
    Call it inside the transaction that inserts the invoice: if the insert
    fails the increment rolls back with it.
    """
    with transaction.atomic():
        # make sure the counter row exists (first invoice ever)
        InvoiceSequence.objects.get_or_create(name=sequence_name)
        InvoiceSequence.objects.filter(name=sequence_name).update(
            last_value=F("last_value") + 1
        )
        value = (
            InvoiceSequence.objects.select_for_update()
            .values_list("last_value", flat=True)
            .get(name=sequence_name)
        )
    return format_invoice_number(value)
