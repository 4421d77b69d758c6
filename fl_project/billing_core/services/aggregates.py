import logging
from decimal import Decimal

from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from ..exceptions import AggregateSyncFailure
from ..models import Client, PendingAggregateDelta, Project

logger = logging.getLogger(__name__)

# Derived fields each target is allowed to carry
_TARGETS = {
    "client": (Client, ("total_revenue", "project_count")),
    "project": (Project, ("total_minutes", "total_earned")),
}


# ----------------------------
# Delta application
# ----------------------------
def _apply_update(target_type, target_id, deltas):
    """One UPDATE ... SET field = field + delta; no read-modify-write in Python."""
    model, _ = _TARGETS[target_type]
    return model.objects.filter(pk=target_id).update(
        **{field: F(field) + delta for field, delta in deltas.items()}
    )


def _serialise(deltas):
    return {k: str(v) if isinstance(v, Decimal) else v for k, v in deltas.items()}


def _deserialise(deltas):
    return {k: Decimal(v) if isinstance(v, str) else v for k, v in deltas.items()}


def _queue_for_retry(failure):
    logger.warning(
        "Aggregate sync failure, queued for reconciliation: %s", failure
    )
    return PendingAggregateDelta.objects.create(
        target_type=failure.target_type,
        target_id=failure.target_id,
        deltas=_serialise(failure.deltas),
        event=failure.event,
        error=str(failure.cause or failure),
    )


def apply_delta(target_type, target_id, event, **deltas):
    """
    Add deltas to the derived fields of one client or project.

    Runs in its own savepoint after the primary write. If the database
    refuses it, the savepoint is rolled back, the failure is logged and
    queued, and the caller carries on: the primary write is the source of
    truth and the queued delta (or the next reconciliation) heals the total.
    Returns True when the delta was applied.
    """
    _, allowed = _TARGETS[target_type]
    unknown = set(deltas) - set(allowed)
    if unknown:
        raise ValueError(f"{target_type} has no aggregate field(s) {sorted(unknown)}")

    # zero deltas are no-ops
    deltas = {field: delta for field, delta in deltas.items() if delta}
    if target_id is None or not deltas:
        return True

    try:
        with transaction.atomic():
            try:
                updated = _apply_update(target_type, target_id, deltas)
            except DatabaseError as exc:
                raise AggregateSyncFailure(
                    target_type, target_id, deltas, event, cause=exc
                ) from exc
    except AggregateSyncFailure as failure:
        _queue_for_retry(failure)
        return False

    if not updated:
        # target removed meanwhile; nothing left to keep in sync
        logger.debug("%s %s gone, skipped %s delta", target_type, target_id, event)
    return True


# ----------------------------------------------
# Events
# ----------------------------------------------
def project_created(project):
    return apply_delta("client", project.client_id, "project_created", project_count=1)


def project_deleted(project):
    return apply_delta("client", project.client_id, "project_deleted", project_count=-1)


def project_moved(project, old_client_id):
    """Project re-assigned from old_client_id to project.client_id."""
    if old_client_id == project.client_id:
        return True
    removed = apply_delta("client", old_client_id, "project_moved", project_count=-1)
    added = apply_delta("client", project.client_id, "project_moved", project_count=1)
    return removed and added


def time_entry_recorded(entry, event="time_entry_created"):
    """A completed entry was created, or a running one was stopped."""
    project_id, minutes, amount = entry.contribution()
    return apply_delta(
        "project", project_id, event, total_minutes=minutes, total_earned=amount
    )


def time_entry_changed(before, entry):
    """
    Apply the difference between an entry's old and new contribution.
    `before` is entry.contribution() captured before the edit.
    """
    old_project, old_minutes, old_amount = before
    new_project, new_minutes, new_amount = entry.contribution()

    if old_project == new_project:
        return apply_delta(
            "project",
            new_project,
            "time_entry_updated",
            total_minutes=new_minutes - old_minutes,
            total_earned=new_amount - old_amount,
        )

    # moved between projects: take it off one, put it on the other
    removed = apply_delta(
        "project",
        old_project,
        "time_entry_updated",
        total_minutes=-old_minutes,
        total_earned=-old_amount,
    )
    added = apply_delta(
        "project",
        new_project,
        "time_entry_updated",
        total_minutes=new_minutes,
        total_earned=new_amount,
    )
    return removed and added


def time_entry_deleted(entry):
    # a running entry never accrued to the project
    project_id, minutes, amount = entry.contribution()
    return apply_delta(
        "project",
        project_id,
        "time_entry_deleted",
        total_minutes=-minutes,
        total_earned=-amount,
    )


def invoice_paid(invoice, previous_status):
    """Credit the client once per invoice: only when it wasn't paid before."""
    if previous_status == "paid" or invoice.status != "paid":
        return False
    return apply_delta(
        "client", invoice.client_id, "invoice_paid", total_revenue=invoice.total
    )


def invoice_deleted(invoice):
    """Deleting a paid invoice takes its total back off the client."""
    if invoice.status != "paid":
        return True
    return apply_delta(
        "client", invoice.client_id, "invoice_deleted", total_revenue=-invoice.total
    )


# ------------------------------------
# Retry queue
# ------------------------------------
def retry_pending_deltas(limit=None):
    """Re-apply queued deltas. Returns the number resolved."""
    pending = PendingAggregateDelta.objects.filter(resolved_at__isnull=True)
    if limit:
        pending = pending[:limit]

    resolved = 0
    for item in pending:
        try:
            with transaction.atomic():
                # re-check under lock so a concurrent retry/reconcile can't double-apply
                locked = PendingAggregateDelta.objects.select_for_update().get(pk=item.pk)
                if locked.resolved_at is not None:
                    continue
                _apply_update(locked.target_type, locked.target_id, _deserialise(locked.deltas))
                locked.resolved_at = timezone.now()
                locked.save(update_fields=["resolved_at"])
        except DatabaseError as exc:
            PendingAggregateDelta.objects.filter(pk=item.pk).update(
                attempts=F("attempts") + 1, error=str(exc)
            )
            logger.warning("Retry of %s failed again: %s", item, exc)
            continue
        resolved += 1
        logger.info("Applied queued delta %s", item)
    return resolved
