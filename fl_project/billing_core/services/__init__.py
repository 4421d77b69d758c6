from .aggregates import apply_delta, retry_pending_deltas
from .audit_helper import log_action
from .calculator import InvoiceTotals, compute_invoice_totals
from .clients import create_client, delete_client, get_client, update_client
from .invoices import (apply_status_change, create_invoice, delete_invoice,
                       mark_overdue_invoices, send_invoice, update_invoice,
                       update_invoice_status)
from .numbering import format_invoice_number, next_invoice_number
from .payment import record_payment
from .projects import create_project, delete_project, get_project, update_project
from .reconciliation import reconcile_aggregates
from .reporting import (dashboard_stats, project_status_distribution,
                        revenue_series, top_clients)
from .time_entries import create_time_entry, delete_time_entry, update_time_entry
from .timer import active_timer, elapsed_minutes, start_timer, stop_timer
