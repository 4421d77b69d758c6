import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def retry_pending_deltas_task(limit=None):
    # import services lazily to avoid circular imports at module import time
    from .services.aggregates import retry_pending_deltas

    return retry_pending_deltas(limit=limit)


@shared_task
def reconcile_aggregates_task(owner_id=None, fix=True):
    """Nightly full recompute of client and project totals."""
    from django.contrib.auth import get_user_model

    from .services.reconciliation import reconcile_aggregates

    owner = None
    if owner_id is not None:
        owner = get_user_model().objects.get(pk=owner_id)

    divergences = reconcile_aggregates(owner=owner, fix=fix)
    # plain data so the result backend can serialise it
    return [
        {
            "target_type": d.target_type,
            "target_id": d.target_id,
            "field": d.field,
            "stored": str(d.stored),
            "expected": str(d.expected),
        }
        for d in divergences
    ]


@shared_task
def mark_overdue_invoices_task():
    from .services.invoices import mark_overdue_invoices

    moved = mark_overdue_invoices()
    logger.debug("mark_overdue_invoices_task moved %d invoice(s)", moved)
    return moved
