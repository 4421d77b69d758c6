import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from .. import conf
from ..exceptions import ConflictError, NotFound
from ..models import Client, Invoice, InvoiceItem, Project, TimeEntry
from ..money import as_decimal
from . import aggregates
from .audit_helper import log_action
from .calculator import compute_invoice_totals
from .numbering import next_invoice_number

logger = logging.getLogger(__name__)

# Plain fields update_invoice may change
EDITABLE_FIELDS = ("issue_date", "due_date", "notes", "payment_method", "project")


# ----------------------------------------------
# Lookups
# ----------------------------------------------
def get_invoice_for_update(owner, invoice_id):
    """Load and row-lock an invoice. owner=None skips scoping (gateway callbacks)."""
    invoices = Invoice.objects.select_for_update()
    if owner is not None:
        invoices = invoices.filter(owner=owner)
    try:
        return invoices.get(pk=invoice_id)
    except Invoice.DoesNotExist:
        raise NotFound(f"Invoice {invoice_id} not found")


def _resolve_client(owner, client):
    client_id = getattr(client, "pk", client)
    if not client_id:
        raise ValidationError("An invoice needs a client")
    try:
        return Client.objects.for_owner(owner).get(pk=client_id)
    except Client.DoesNotExist:
        raise NotFound(f"Client {client_id} not found")


def _resolve_project(owner, project):
    if project is None:
        return None
    project_id = getattr(project, "pk", project)
    try:
        return Project.objects.for_owner(owner).get(pk=project_id)
    except Project.DoesNotExist:
        raise NotFound(f"Project {project_id} not found")


def _build_items(invoice, items, item_amounts):
    built = []
    for position, (item, amount) in enumerate(zip(items, item_amounts)):
        description = str(item.get("description") or "").strip()
        if not description:
            raise ValidationError(f"Item {position + 1} needs a description")
        line = InvoiceItem(
            invoice=invoice,
            position=position,
            description=description,
            quantity=as_decimal(item.get("quantity", 1)),
            rate=as_decimal(item.get("rate")),
            amount=amount,
        )
        line.full_clean()
        built.append(line)
    # bulk insert: totals were already computed from the same numbers
    return InvoiceItem.objects.bulk_create(built)


def _attach_time_entries(owner, invoice, time_entry_ids):
    """Mark completed, not-yet-billed entries of the invoice's client as invoiced."""
    entries = TimeEntry.objects.select_for_update().for_owner(owner).filter(
        pk__in=list(time_entry_ids)
    )
    found = {e.pk: e for e in entries}
    missing = set(time_entry_ids) - set(found)
    if missing:
        raise NotFound(f"Time entries {sorted(missing)} not found")
    for entry in found.values():
        if entry.is_running:
            raise ConflictError(f"Time entry {entry.pk} is still running")
        if entry.invoiced:
            raise ConflictError(f"Time entry {entry.pk} is already invoiced")
        if entry.client_id != invoice.client_id:
            raise ValidationError(f"Time entry {entry.pk} belongs to another client")
    TimeEntry.objects.filter(pk__in=list(found)).update(invoiced=True, invoice=invoice)


# ----------------------------------------------
# Create / edit / delete
# ----------------------------------------------
def create_invoice(
    owner,
    client,
    items,
    tax=0,
    discount=0,
    due_date=None,
    project=None,
    issue_date=None,
    notes="",
    payment_method="stripe",
    currency_code=None,
    time_entries=None,
):
    """
    Create a draft invoice: take the next number, compute the totals
    server-side and store the items. Number and invoice commit together.
    """
    if not items:
        raise ValidationError("An invoice needs at least one item")
    if due_date is None:
        raise ValidationError("An invoice needs a due date")

    totals = compute_invoice_totals(items, tax, discount)

    with transaction.atomic():
        client = _resolve_client(owner, client)
        project = _resolve_project(owner, project)

        invoice = Invoice(
            owner=owner,
            client=client,
            project=project,
            invoice_number=next_invoice_number(),
            status="draft",
            issue_date=issue_date or timezone.localdate(),
            due_date=due_date,
            tax=as_decimal(tax),
            discount=as_decimal(discount),
            subtotal=totals.subtotal,
            total=totals.total,
            notes=notes,
            payment_method=payment_method,
            currency_code=currency_code or conf.default_currency(),
        )
        invoice.full_clean()
        invoice.save()
        _build_items(invoice, items, totals.item_amounts)

        if time_entries:
            _attach_time_entries(owner, invoice, time_entries)

        log_action(
            action="create",
            instance=invoice,
            changes={"invoice_number": invoice.invoice_number, "total": str(invoice.total)},
        )
    logger.info("Issued invoice %s total=%s", invoice.invoice_number, invoice.total)
    return invoice


def update_invoice(owner, invoice_id, items=None, tax=None, discount=None, **fields):
    """Edit an invoice; subtotal and total are always recomputed from its
    items. Amounts of paid or cancelled invoices are frozen."""
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot edit {sorted(unknown)} on an invoice")

    with transaction.atomic():
        invoice = get_invoice_for_update(owner, invoice_id)
        touches_amounts = items is not None or tax is not None or discount is not None
        if invoice.is_locked and touches_amounts:
            raise ConflictError(f"Cannot change amounts of a {invoice.status} invoice")

        if "project" in fields:
            fields["project"] = _resolve_project(owner, fields["project"])
        for name, value in fields.items():
            setattr(invoice, name, value)
        if tax is not None:
            invoice.tax = as_decimal(tax)
        if discount is not None:
            invoice.discount = as_decimal(discount)

        if items is not None:
            if not items:
                raise ValidationError("An invoice needs at least one item")
            totals = compute_invoice_totals(items, invoice.tax, invoice.discount)
            invoice.items.all().delete()
            _build_items(invoice, items, totals.item_amounts)

        if not invoice.is_locked:
            invoice.recalc_totals()
        invoice.full_clean()
        invoice.save()
    return invoice


def delete_invoice(owner, invoice_id):
    """
    Delete an invoice. Its time entries become billable again, and if it was
    paid its total comes back off the client's revenue. Invoices with
    completed payments are refused by the pre_delete receiver.
    """
    with transaction.atomic():
        invoice = get_invoice_for_update(owner, invoice_id)
        log_action(
            action="delete",
            instance=invoice,
            changes={
                "invoice_number": invoice.invoice_number,
                "status": invoice.status,
                "total": str(invoice.total),
            },
        )
        TimeEntry.objects.filter(invoice=invoice).update(invoiced=False, invoice=None)
        invoice.delete()
        aggregates.invoice_deleted(invoice)
    return invoice


# ----------------------------------------------
# Status workflows
# ----------------------------------------------
def apply_status_change(invoice, new_status, now=None, today=None):
    """Run the state machine on a locked invoice and fire its side effects."""
    if new_status == "overdue" and invoice.status == "sent":
        today = today or timezone.localdate()
        if invoice.due_date >= today:
            raise ConflictError(
                f"Invoice {invoice.invoice_number} is not past due ({invoice.due_date})"
            )

    previous = invoice.transition_to(new_status, now=now)
    if previous == invoice.status:
        # same status again: nothing changes, nothing is counted twice
        return previous

    if invoice.status == "paid":
        aggregates.invoice_paid(invoice, previous)
    log_action(
        action="status_change",
        instance=invoice,
        changes={"from": previous, "to": invoice.status},
    )
    return previous


def update_invoice_status(owner, invoice_id, new_status, now=None, today=None):
    with transaction.atomic():
        # lock so the "was it already paid?" check can't race
        invoice = get_invoice_for_update(owner, invoice_id)
        apply_status_change(invoice, new_status, now=now, today=today)
    return invoice


def send_invoice(owner, invoice_id):
    return update_invoice_status(owner, invoice_id, "sent")


def mark_overdue_invoices(today=None, owner=None):
    """Move sent invoices whose due date has passed to overdue."""
    today = today or timezone.localdate()
    due = Invoice.objects.filter(status="sent", due_date__lt=today)
    if owner is not None:
        due = due.filter(owner=owner)

    moved = 0
    for invoice_id in list(due.values_list("pk", flat=True)):
        with transaction.atomic():
            invoice = get_invoice_for_update(None, invoice_id)
            # re-check under lock; it may have been paid meanwhile
            if invoice.status != "sent":
                continue
            apply_status_change(invoice, "overdue", today=today)
            moved += 1
    if moved:
        logger.info("Marked %d invoice(s) overdue as of %s", moved, today)
    return moved
