import json
from functools import wraps

from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.utils.dateparse import parse_date, parse_datetime
from django.views.decorators.http import require_GET, require_POST

from .exceptions import ConflictError, NotFound
from .models import Invoice
from .services import (create_invoice, dashboard_stats, project_status_distribution,
                       record_payment, revenue_series, start_timer, stop_timer,
                       top_clients, update_invoice_status)
from .services.timer import active_timer


def _error(message, status):
    return JsonResponse({"ok": False, "error": message}, status=status)


def api_view(func):
    """Authenticated JSON endpoint; service errors become 400/404/409."""

    @wraps(func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return _error("Authentication required", 401)
        try:
            return func(request, *args, **kwargs)
        except ValidationError as e:
            return _error(" ".join(e.messages), 400)
        except NotFound as e:
            return _error(str(e), 404)
        except ConflictError as e:
            return _error(str(e), 409)

    return wrapper


def _body(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except ValueError:
        raise ValidationError("Request body is not valid JSON")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _entry_json(entry):
    return {
        "id": entry.pk,
        "project": entry.project_id,
        "description": entry.description,
        "start_time": entry.start_time,
        "end_time": entry.end_time,
        "duration": entry.duration,
        "amount": entry.amount,
        "running": entry.is_running,
    }


def _invoice_json(invoice):
    return {
        "id": invoice.pk,
        "invoice_number": invoice.invoice_number,
        "status": invoice.status,
        "subtotal": invoice.subtotal,
        "total": invoice.total,
        "paid_date": invoice.paid_date,
    }


# ---------- Dashboard ----------
@require_GET
@api_view
def dashboard_view(request):
    return JsonResponse(
        {
            "stats": dashboard_stats(request.user),
            "revenue": revenue_series(request.user),
            "project_status": project_status_distribution(request.user),
            "top_clients": top_clients(request.user),
        }
    )


@require_GET
@api_view
def revenue_view(request):
    months = request.GET.get("months")
    try:
        months = int(months) if months else None
    except ValueError:
        raise ValidationError("months must be a whole number")
    return JsonResponse({"revenue": revenue_series(request.user, months=months)})


# ---------- Timer ----------
@require_GET
@api_view
def active_timer_view(request):
    entry = active_timer(request.user)
    return JsonResponse({"timer": _entry_json(entry) if entry else None})


@require_POST
@api_view
def start_timer_view(request):
    data = _body(request)
    entry = start_timer(request.user, data.get("project"), data.get("description"))
    return JsonResponse(_entry_json(entry), status=201)


@require_POST
@api_view
def stop_timer_view(request, entry_id):
    entry = stop_timer(entry_id, owner=request.user)
    return JsonResponse(_entry_json(entry))


# ---------- Invoices ----------
@require_POST
@api_view
def create_invoice_view(request):
    data = _body(request)
    due_date = parse_date(data.get("due_date") or "")
    if due_date is None:
        raise ValidationError("due_date must be a YYYY-MM-DD date")
    invoice = create_invoice(
        request.user,
        client=data.get("client"),
        items=data.get("items") or [],
        tax=data.get("tax", 0),
        discount=data.get("discount", 0),
        due_date=due_date,
        project=data.get("project"),
        notes=data.get("notes", ""),
        time_entries=data.get("time_entries"),
    )
    return JsonResponse(_invoice_json(invoice), status=201)


@require_POST
@api_view
def invoice_status_view(request, invoice_id):
    data = _body(request)
    invoice = update_invoice_status(request.user, invoice_id, data.get("status"))
    return JsonResponse(_invoice_json(invoice))


@require_POST
@api_view
def record_payment_view(request, invoice_id):
    data = _body(request)
    payment_date = data.get("payment_date")
    payment = record_payment(
        invoice_id,
        amount=data.get("amount"),
        method=data.get("method", "stripe"),
        owner=request.user,
        transaction_id=data.get("transaction_id", ""),
        gateway_reference=data.get("gateway_reference", ""),
        payment_date=parse_datetime(payment_date) if payment_date else None,
    )
    # zero-total invoices are settled without a payment row
    invoice = Invoice.objects.for_owner(request.user).only("status").get(pk=invoice_id)
    return JsonResponse(
        {
            "ok": True,
            "payment": payment.pk if payment else None,
            "amount": payment.amount if payment else "0.00",
            "invoice_status": invoice.status,
        },
        status=201,
    )
