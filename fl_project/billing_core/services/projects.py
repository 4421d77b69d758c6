from django.core.exceptions import ValidationError
from django.db import transaction

from ..exceptions import ConflictError, NotFound
from ..models import Client, Invoice, Project, TimeEntry
from . import aggregates
from .audit_helper import log_action

DERIVED_PROJECT_FIELDS = ("total_minutes", "total_earned")


def get_project(owner, project_id):
    try:
        return Project.objects.for_owner(owner).get(pk=project_id)
    except Project.DoesNotExist:
        raise NotFound(f"Project {project_id} not found")


def _resolve_client(owner, client):
    client_id = getattr(client, "pk", client)
    if not client_id:
        raise ValidationError("A project needs a client")
    try:
        return Client.objects.for_owner(owner).get(pk=client_id)
    except Client.DoesNotExist:
        raise NotFound(f"Client {client_id} not found")


def check_client_move(project):
    """A project that has been billed stays with the client it was billed to."""
    if Invoice.objects.filter(project=project).exists():
        raise ConflictError(f"Project {project.pk} has invoices, it cannot change client")
    if TimeEntry.objects.filter(project=project, invoiced=True).exists():
        raise ConflictError(
            f"Project {project.pk} has invoiced time entries, it cannot change client"
        )


def move_to_client(project, old_client_id):
    """Carry the time entries and the project counts over to the new client."""
    TimeEntry.objects.filter(project=project).update(client_id=project.client_id)
    aggregates.project_moved(project, old_client_id)


def create_project(owner, client, name, **fields):
    derived = set(fields) & set(DERIVED_PROJECT_FIELDS)
    if derived:
        raise ValidationError(f"{sorted(derived)} are computed, not set")

    with transaction.atomic():
        client = _resolve_client(owner, client)
        project = Project(owner=owner, client=client, name=name, **fields)
        project.full_clean()
        project.save()
        # client.project_count += 1
        aggregates.project_created(project)
    return project


def update_project(owner, project_id, **fields):
    """Edit a project. Moving it to another client moves its time entries
    and the count too, unless it has been billed. A new hourly rate applies
    to future entries only."""
    derived = set(fields) & set(DERIVED_PROJECT_FIELDS)
    if derived:
        raise ValidationError(f"{sorted(derived)} are computed, not set")

    with transaction.atomic():
        project = get_project(owner, project_id)
        old_client_id = project.client_id
        if "client" in fields:
            fields["client"] = _resolve_client(owner, fields["client"])
            if fields["client"].pk != old_client_id:
                check_client_move(project)
        for name, value in fields.items():
            setattr(project, name, value)
        project.full_clean()
        project.save(update_fields=[*fields, "updated_at"])
        if project.client_id != old_client_id:
            move_to_client(project, old_client_id)
    return project


def delete_project(owner, project_id):
    """Delete a project with its time entries; the client's count drops by one."""
    with transaction.atomic():
        project = get_project(owner, project_id)
        log_action(
            action="delete",
            instance=project,
            owner=owner,
            changes={"client_id": project.client_id, "name": project.name},
        )
        project.delete()
        # client_id survives delete(), only pk is cleared
        aggregates.project_deleted(project)
    return project
