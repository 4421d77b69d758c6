from ..models import AuditLog


def log_action(
    *,
    action: str,
    instance,
    owner=None,
    changes: dict | None = None,
):
    """
    Central audit logger.
    Safe to call multiple times (caller ensures idempotency).
    """

    if owner is None:
        owner = getattr(instance, "owner", None)

    return AuditLog.objects.create(
        owner=owner,
        action=action,
        object_type=instance.__class__.__name__,
        object_id=str(instance.pk),
        changes=changes,
    )
