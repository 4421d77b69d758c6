from django.core.exceptions import ValidationError
from django.db import transaction

from ..exceptions import ConflictError, NotFound
from ..models import Client
from .audit_helper import log_action

# Maintained by the aggregate maintainer and the reconciliation pass only
DERIVED_CLIENT_FIELDS = ("total_revenue", "project_count")


def get_client(owner, client_id):
    try:
        return Client.objects.for_owner(owner).get(pk=client_id)
    except Client.DoesNotExist:
        raise NotFound(f"Client {client_id} not found")


def create_client(owner, **fields):
    derived = set(fields) & set(DERIVED_CLIENT_FIELDS)
    if derived:
        raise ValidationError(f"{sorted(derived)} are computed, not set")
    client = Client(owner=owner, **fields)
    client.full_clean()
    client.save()
    return client


def update_client(owner, client_id, **fields):
    """Edit contact details/status. Revenue and project count are refused."""
    derived = set(fields) & set(DERIVED_CLIENT_FIELDS)
    if derived:
        raise ValidationError(f"{sorted(derived)} are computed, not set")
    if "owner" in fields:
        raise ValidationError("A client cannot change owner")

    with transaction.atomic():
        client = get_client(owner, client_id)
        for name, value in fields.items():
            setattr(client, name, value)
        client.full_clean()
        client.save(update_fields=[*fields, "updated_at"])
    return client


def delete_client(owner, client_id):
    """Remove a client nobody has worked or billed for yet."""
    with transaction.atomic():
        client = get_client(owner, client_id)
        if client.projects.exists():
            raise ConflictError(f"Client {client_id} has projects")
        if client.invoices.exists():
            raise ConflictError(f"Client {client_id} has invoices")
        log_action(
            action="delete",
            instance=client,
            owner=owner,
            changes={"name": client.name, "email": client.email},
        )
        client.delete()
    return client
