from django.db.models.signals import post_delete, post_save, pre_delete
from django.dispatch import receiver

from .exceptions import ConflictError
from .models import Invoice, InvoiceItem, Payment

""" Block invoice deletion once money has been received for it."""


# pre_delete fires just before Django deletes the Invoice instance,
# including deletes issued from the admin or a queryset
@receiver(pre_delete, sender=Invoice)
def prevent_delete_invoice_with_payments(sender, instance, **kwargs):
    if Payment.objects.filter(invoice=instance, status="completed").exists():
        raise ConflictError(
            f"Cannot delete invoice {instance.invoice_number} with completed payments."
        )


"""
    Recalculate invoice totals when an item is added/updated/removed.
    Paid and cancelled invoices keep the totals they were settled with.
"""


@receiver((post_save, post_delete), sender=InvoiceItem)
def invoice_item_changed(sender, instance, **kwargs):
    try:
        inv = Invoice.objects.get(pk=instance.invoice_id)
    except Invoice.DoesNotExist:
        return
    if inv.is_locked:
        return
    inv.recalc_totals()
    # save totals only, items were validated on their own save
    inv.save(update_fields=["subtotal", "total", "updated_at"])
