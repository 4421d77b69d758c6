from django.contrib import admin

from billing_core.models import Client

from .actions import reconcile_selected_owners
from .mixins import OwnerAdminMixin


# Register `Client` model
@admin.register(Client)
class ClientAdmin(OwnerAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "owner",
        "name",
        "company_name",
        "email",
        "status",
        "project_count",
        "total_revenue",
    )
    list_filter = ("status",)
    search_fields = ("name", "company_name", "email")
    actions = [reconcile_selected_owners]
    # maintained by the aggregate updates, never typed in
    readonly_fields = ("total_revenue", "project_count", "created_at", "updated_at")

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("owner")
