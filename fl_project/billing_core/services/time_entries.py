from django.core.exceptions import ValidationError
from django.db import transaction

from ..exceptions import ConflictError, NotFound
from ..models import TimeEntry
from . import aggregates
from .timer import resolve_project, start_timer

EDITABLE_FIELDS = (
    "description",
    "start_time",
    "end_time",
    "hourly_rate",
    "billable",
    "tags",
    "project",
)
# Fields that feed duration/amount; frozen once the entry is invoiced
BILLED_FIELDS = ("start_time", "end_time", "hourly_rate", "project")


def _get_entry_for_update(owner, entry_id):
    try:
        return TimeEntry.objects.select_for_update().for_owner(owner).get(pk=entry_id)
    except TimeEntry.DoesNotExist:
        raise NotFound(f"Time entry {entry_id} not found")


def create_time_entry(
    owner, project, description, start_time, end_time=None, hourly_rate=None, **fields
):
    """
    Log time on a project. Without end_time this starts the owner's timer
    (and fails if one is already running); with end_time the entry counts
    towards the project totals straight away.
    """
    if end_time is None:
        return start_timer(
            owner,
            project,
            description,
            now=start_time,
            hourly_rate=hourly_rate,
            **fields,
        )

    if not description or not str(description).strip():
        raise ValidationError("A description is required")

    with transaction.atomic():
        project = resolve_project(owner, project)
        entry = TimeEntry(
            owner=owner,
            project=project,
            client_id=project.client_id,
            description=str(description).strip(),
            start_time=start_time,
            end_time=end_time,
            hourly_rate=project.hourly_rate if hourly_rate is None else hourly_rate,
            **fields,
        )
        entry.full_clean(validate_constraints=False)
        entry.save()
        aggregates.time_entry_recorded(entry, event="time_entry_created")
    return entry


def update_time_entry(owner, entry_id, **fields):
    """Edit an entry and move the project totals by the difference only."""
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot edit {sorted(unknown)} on a time entry")

    with transaction.atomic():
        entry = _get_entry_for_update(owner, entry_id)
        before = entry.contribution()

        if "end_time" in fields and fields["end_time"] is None and not entry.is_running:
            raise ValidationError("A stopped entry cannot be restarted; start a new timer")
        if entry.invoiced and set(fields) & set(BILLED_FIELDS):
            raise ConflictError(f"Time entry {entry_id} is already invoiced")

        if "project" in fields:
            project = resolve_project(owner, fields.pop("project"))
            entry.project = project
            entry.client_id = project.client_id
        for name, value in fields.items():
            setattr(entry, name, value)

        entry.full_clean(validate_constraints=False)
        entry.save()
        aggregates.time_entry_changed(before, entry)
    return entry


def delete_time_entry(owner, entry_id):
    """Delete an entry. A running one simply disappears (the owner is idle
    again); a completed one is taken back off its project."""
    with transaction.atomic():
        entry = _get_entry_for_update(owner, entry_id)
        entry.delete()
        # field values survive delete(); contribution() is still accurate
        aggregates.time_entry_deleted(entry)
    return entry
