from django.contrib import admin, messages
from django.core.exceptions import ValidationError

from ..exceptions import BillingError
from ..services.aggregates import retry_pending_deltas
from ..services.invoices import update_invoice_status
from ..services.reconciliation import reconcile_aggregates
from ..services.timer import stop_timer

# ---------- Admin actions ----------


def _transition_invoices(modeladmin, request, queryset, new_status):
    """
    Move each selected invoice through the status service, so admins
    can't bypass the transition rules or the revenue bookkeeping.
    One failure doesn't stop the batch.
    """
    success = 0
    for inv in queryset:
        try:
            update_invoice_status(inv.owner, inv.pk, new_status)
            success += 1
        except (ValidationError, BillingError) as exc:
            modeladmin.message_user(
                request, f"{inv}: {exc}", level=messages.ERROR)

    modeladmin.message_user(
        request,
        f"Marked {success} of {len(queryset)} invoice(s) as {new_status}.",
        level=messages.SUCCESS if success == len(queryset) else messages.WARNING,
    )


@admin.action(description="Mark selected invoices as Sent")
def mark_inv_as_sent(modeladmin, request, queryset):
    _transition_invoices(modeladmin, request, queryset, "sent")


@admin.action(description="Mark selected invoices as Paid")
def mark_inv_as_paid(modeladmin, request, queryset):
    _transition_invoices(modeladmin, request, queryset, "paid")


@admin.action(description="Mark selected invoices as Overdue")
def mark_inv_as_overdue(modeladmin, request, queryset):
    _transition_invoices(modeladmin, request, queryset, "overdue")


@admin.action(description="Cancel selected invoices")
def mark_inv_as_cancelled(modeladmin, request, queryset):
    _transition_invoices(modeladmin, request, queryset, "cancelled")


""" Stop running timers; stopped ones are reported, not re-stopped """


@admin.action(description="Stop selected running timers")
def stop_selected_timers(modeladmin, request, queryset):
    stopped = 0
    for entry in queryset:
        try:
            stop_timer(entry.pk, owner=entry.owner)
            stopped += 1
        except (ValidationError, BillingError) as exc:
            modeladmin.message_user(
                request, f"{entry}: {exc}", level=messages.ERROR)
    modeladmin.message_user(request, f"Stopped {stopped} timer(s).")


""" Recompute derived totals for the owners of the selected clients """


@admin.action(description="Recompute revenue and project totals")
def reconcile_selected_owners(modeladmin, request, queryset):
    found = 0
    owners = {client.owner for client in queryset.select_related("owner")}
    for owner in owners:
        found += len(reconcile_aggregates(owner=owner))
    modeladmin.message_user(
        request,
        f"Reconciliation done: {found} stale total(s) corrected.",
        level=messages.SUCCESS if found == 0 else messages.WARNING,
    )


@admin.action(description="Retry queued aggregate updates")
def retry_queued_deltas(modeladmin, request, queryset):
    resolved = retry_pending_deltas()
    modeladmin.message_user(request, f"Applied {resolved} queued update(s).")
