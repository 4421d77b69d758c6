from django.contrib import admin, messages

from billing_core.models import Invoice, Payment

from ..exceptions import ConflictError
from ..services.invoices import delete_invoice
from .actions import (mark_inv_as_cancelled, mark_inv_as_overdue,
                      mark_inv_as_paid, mark_inv_as_sent)
from .inlines import InvoiceItemInline, PaymentInline
from .mixins import OwnerAdminMixin


# Register `Invoice` model
@admin.register(Invoice)
class InvoiceAdmin(OwnerAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "owner",
        "invoice_number",
        "client",
        "issue_date",
        "due_date",
        "status",
        "total",
        "paid_date",
    )
    list_filter = ("status", "issue_date")
    actions = [mark_inv_as_sent, mark_inv_as_paid, mark_inv_as_overdue, mark_inv_as_cancelled]
    search_fields = ("invoice_number", "client__name")
    inlines = [InvoiceItemInline, PaymentInline]
    # number comes from the sequence, totals from the items,
    # status only moves through the actions above
    readonly_fields = (
        "invoice_number",
        "status",
        "subtotal",
        "total",
        "paid_date",
        "created_at",
        "updated_at",
    )

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        # ensure qs is a QuerySet
        if qs is None:
            return Invoice.objects.none()
        return qs.select_related("owner", "client", "project")

    # invoices are issued through create_invoice so they get a number
    def has_add_permission(self, request):
        return False

    """ Enforce immutability at admin level """

    def get_readonly_fields(self, request, obj=None):
        # Paid or cancelled: every field becomes read-only
        if obj and obj.is_locked:
            return [f.name for f in self.model._meta.fields]
        return super().get_readonly_fields(request, obj)

    def has_delete_permission(self, request, obj=None):
        # money received: removes "Delete" option from admin for that invoice
        if obj and obj.payments.filter(status="completed").exists():
            return False
        return super().has_delete_permission(request, obj)

    def save_model(self, request, obj, form, change):
        # tax or discount may have changed
        if not obj.is_locked:
            obj.recalc_totals()
        super().save_model(request, obj, form, change)

    def save_related(self, request, form, formsets, change):
        super().save_related(request, form, formsets, change)
        # items changed inline: reload the totals the signal stored
        form.instance.refresh_from_db(fields=["subtotal", "total"])

    def delete_model(self, request, obj):
        delete_invoice(obj.owner, obj.pk)

    def delete_queryset(self, request, queryset):
        for inv in queryset:
            try:
                delete_invoice(inv.owner, inv.pk)
            except ConflictError as exc:
                self.message_user(request, f"{inv}: {exc}", level=messages.ERROR)


# Register `Payment` model
@admin.register(Payment)
class PaymentAdmin(OwnerAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "owner",
        "invoice",
        "client",
        "amount",
        "currency",
        "method",
        "status",
        "payment_date",
    )
    list_filter = ("status", "method")
    search_fields = ("transaction_id", "gateway_reference", "invoice__invoice_number")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("owner", "invoice", "client")

    # payments are recorded by record_payment, never typed in
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
