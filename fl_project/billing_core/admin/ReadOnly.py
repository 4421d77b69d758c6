from django.contrib import admin
from django.core.exceptions import PermissionDenied

"""Base admin for bookkeeping rows the services write (audit log, sequences,
queued deltas): viewable, never edited by hand."""
class ReadOnlyAdmin(admin.ModelAdmin):
    list_per_page = 50  # page size (adjust for performance)

    # make every model field readonly
    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    # Allow viewing the change form (read-only) by returning True here.
    # Prevent any saves by overriding save_model.
    def has_change_permission(self, request, obj=None):
        return True

    # Prevent any attempt to save via the admin UI
    def save_model(self, request, obj, form, change):
        raise PermissionDenied("Rows cannot be changed via the admin.")

    # Common useful filters if present
    def get_list_filter(self, request):
        possible = {f.name for f in self.model._meta.fields}
        return tuple(
            candidate
            for candidate in ("action", "object_type", "target_type", "event")
            if candidate in possible
        )
