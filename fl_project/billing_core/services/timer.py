import logging

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from ..exceptions import AlreadyStopped, ConflictError, NotFound
from ..models import Project, TimeEntry
from . import aggregates
from .audit_helper import log_action

logger = logging.getLogger(__name__)

""" Timer lifecycle per user:

        Idle  --start_timer-->  Running  --stop_timer-->  Idle

    "Running" is not a flag: it is the user's one TimeEntry with no end_time.
    Deleting that entry also returns the user to Idle. """


def resolve_project(owner, project):
    project_id = getattr(project, "pk", project)
    if not project_id:
        raise ValidationError("A project is required")
    try:
        return Project.objects.for_owner(owner).get(pk=project_id)
    except Project.DoesNotExist:
        raise NotFound(f"Project {project_id} not found")


def active_timer(owner):
    """The owner's running entry, or None when idle."""
    return (
        TimeEntry.objects.for_owner(owner)
        .running()
        .select_related("project", "client")
        .first()
    )


def elapsed_minutes(entry, now=None):
    """Minutes on the clock so far, from wall-clock difference."""
    return entry.elapsed_minutes(now=now)


def _ensure_idle(owner):
    running = TimeEntry.objects.for_owner(owner).running().only("pk").first()
    if running is not None:
        raise ConflictError(
            f"Timer already running (entry {running.pk}); stop it first"
        )


def start_timer(owner, project, description, now=None, hourly_rate=None, **fields):
    """
    Start the owner's timer on a project.

    Raises ValidationError for a missing project/description, NotFound for a
    project the owner doesn't have, ConflictError if a timer is running.
    """
    if not project:
        raise ValidationError("A project is required")
    if not description or not str(description).strip():
        raise ValidationError("A description is required")

    with transaction.atomic():
        project = resolve_project(owner, project)
        _ensure_idle(owner)

        entry = TimeEntry(
            owner=owner,
            project=project,
            client_id=project.client_id,
            description=str(description).strip(),
            start_time=now or timezone.now(),
            end_time=None,
            # snapshot; later project rate changes don't touch this entry
            hourly_rate=project.hourly_rate if hourly_rate is None else hourly_rate,
            **fields,
        )
        entry.full_clean(validate_constraints=False)
        try:
            # the partial unique index catches a start that raced past _ensure_idle
            with transaction.atomic():
                entry.save()
        except IntegrityError:
            raise ConflictError("Timer already running; stop it first")

    logger.debug("Timer %s started for owner %s", entry.pk, owner.pk)
    return entry


def stop_timer(entry_id, owner=None, now=None):
    """
    Stop a running entry: set end_time, compute duration/amount and add them
    to the project, exactly once.
    """
    with transaction.atomic():
        # Lock the entry so two stops can't both see it running
        entries = TimeEntry.objects.select_for_update()
        if owner is not None:
            entries = entries.filter(owner=owner)
        try:
            entry = entries.get(pk=entry_id)
        except TimeEntry.DoesNotExist:
            raise NotFound(f"Time entry {entry_id} not found")

        if not entry.is_running:
            raise AlreadyStopped(f"Timer {entry_id} already stopped")

        end_time = now or timezone.now()
        if end_time < entry.start_time:
            raise ValidationError("Timer cannot stop before it started")

        entry.end_time = end_time
        entry.save()  # recalculates duration and amount
        aggregates.time_entry_recorded(entry, event="timer_stopped")

        log_action(
            action="stop_timer",
            instance=entry,
            changes={"duration": entry.duration, "amount": str(entry.amount)},
        )
    return entry
