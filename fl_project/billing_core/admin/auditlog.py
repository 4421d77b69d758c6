from django.contrib import admin

from billing_core.models import AuditLog, InvoiceSequence, PendingAggregateDelta

from .actions import retry_queued_deltas
from .mixins import OwnerAdminMixin
from .ReadOnly import ReadOnlyAdmin


# Register `AuditLog` model
@admin.register(AuditLog)
class AuditLogAdmin(OwnerAdminMixin, ReadOnlyAdmin):
    list_display = (
        "id",
        "owner",
        "action",
        "object_type",
        "object_id",
        "created_at",
    )
    search_fields = ("object_type", "object_id", "owner__username")

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("owner")


# Register `PendingAggregateDelta` model
@admin.register(PendingAggregateDelta)
class PendingAggregateDeltaAdmin(ReadOnlyAdmin):
    list_display = (
        "id",
        "event",
        "target_type",
        "target_id",
        "deltas",
        "attempts",
        "created_at",
        "resolved_at",
    )
    actions = [retry_queued_deltas]


# Register `InvoiceSequence` model
@admin.register(InvoiceSequence)
class InvoiceSequenceAdmin(ReadOnlyAdmin):
    list_display = ("name", "last_value")
