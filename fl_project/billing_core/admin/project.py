from django.contrib import admin, messages
from django.db import transaction

from billing_core.models import Project, TimeEntry

from ..exceptions import ConflictError
from ..services import aggregates
from ..services.projects import check_client_move, delete_project, move_to_client
from ..services.time_entries import BILLED_FIELDS, delete_time_entry
from .actions import stop_selected_timers
from .inlines import TimeEntryInline
from .mixins import OwnerAdminMixin


# Register `Project` model
@admin.register(Project)
class ProjectAdmin(OwnerAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "owner",
        "name",
        "client",
        "status",
        "priority",
        "hourly_rate",
        "total_hours",
        "total_earned",
    )
    list_filter = ("status", "priority", "billing_type")
    search_fields = ("name", "client__name")
    inlines = [TimeEntryInline]
    readonly_fields = ("total_minutes", "total_earned", "created_at", "updated_at")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("owner", "client")

    """ Keep the client's project count in step with admin edits """

    def save_model(self, request, obj, form, change):
        old_client_id = form.initial.get("client") if change else None
        moved = change and "client" in form.changed_data
        if moved:
            try:
                check_client_move(obj)
            except ConflictError as exc:
                # keep the other edits, drop the move
                self.message_user(request, str(exc), level=messages.ERROR)
                obj.client_id = old_client_id
                moved = False
        with transaction.atomic():
            super().save_model(request, obj, form, change)
            if not change:
                aggregates.project_created(obj)
            elif moved:
                move_to_client(obj, old_client_id)

    def delete_model(self, request, obj):
        delete_project(obj.owner, obj.pk)

    def delete_queryset(self, request, queryset):
        for project in queryset:
            delete_project(project.owner, project.pk)


# Register `TimeEntry` model
@admin.register(TimeEntry)
class TimeEntryAdmin(OwnerAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "owner",
        "project",
        "description",
        "start_time",
        "end_time",
        "duration",
        "amount",
        "invoiced",
    )
    list_filter = ("billable", "invoiced")
    search_fields = ("description", "project__name")
    date_hierarchy = "start_time"
    actions = [stop_selected_timers]
    readonly_fields = ("client", "duration", "amount", "invoiced", "invoice")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("owner", "project", "client")

    """ Enforce billed-entry immutability at admin level """

    def get_readonly_fields(self, request, obj=None):
        if obj and obj.invoiced:
            return list(self.readonly_fields) + list(BILLED_FIELDS)
        return super().get_readonly_fields(request, obj)

    def save_model(self, request, obj, form, change):
        # what the stored row contributed before this edit
        before = TimeEntry.objects.get(pk=obj.pk).contribution() if change else None
        if "project" in form.changed_data or not obj.client_id:
            obj.client_id = obj.project.client_id
        super().save_model(request, obj, form, change)
        if change:
            aggregates.time_entry_changed(before, obj)
        else:
            aggregates.time_entry_recorded(obj, event="time_entry_created")

    def delete_model(self, request, obj):
        delete_time_entry(obj.owner, obj.pk)

    def delete_queryset(self, request, queryset):
        for entry in queryset:
            delete_time_entry(entry.owner, entry.pk)
