from django.contrib import admin

from billing_core.models import InvoiceItem, Payment, TimeEntry

from .mixins import OwnerAdminMixin

# ---------- Helpful inline admin classes ----------


class InvoiceItemInline(admin.TabularInline):
    """Shows invoice items under an Invoice page"""

    model = InvoiceItem
    extra = 0
    fields = ("position", "description", "quantity", "rate", "amount")
    readonly_fields = (
        "amount",
    )  # `amount` is computed automatically, so it's read-only
    ordering = ("position", "id")

    def get_readonly_fields(self, request, obj=None):
        # Once the invoice is paid or cancelled its items are locked
        if obj and obj.is_locked:
            return list(self.fields)
        return self.readonly_fields

    # Hide add new item option
    def has_add_permission(self, request, obj=None):
        if obj and obj.is_locked:
            return False
        return super().has_add_permission(request, obj)

    # Hide delete options
    def has_delete_permission(self, request, obj=None):
        if obj and obj.is_locked:
            return False
        return super().has_delete_permission(request, obj)


class PaymentInline(admin.TabularInline):
    """Payments received against an invoice; recorded by record_payment only"""

    model = Payment
    extra = 0
    fields = ("payment_date", "amount", "currency", "method", "status", "transaction_id")
    readonly_fields = fields
    can_delete = False
    show_change_link = True

    def has_add_permission(self, request, obj=None):
        return False


class TimeEntryInline(OwnerAdminMixin, admin.TabularInline):
    """Time logged on a project; duration and amount are derived"""

    model = TimeEntry
    extra = 0
    fields = ("description", "start_time", "end_time", "duration", "amount", "invoiced")
    readonly_fields = fields
    can_delete = False
    show_change_link = True
    ordering = ("-start_time",)

    def has_add_permission(self, request, obj=None):
        # entries go through the timer or the time entry admin
        return False
