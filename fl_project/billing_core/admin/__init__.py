from .actions import (mark_inv_as_cancelled, mark_inv_as_overdue,
                      mark_inv_as_paid, mark_inv_as_sent,
                      reconcile_selected_owners, retry_queued_deltas,
                      stop_selected_timers)
from .auditlog import (AuditLogAdmin, InvoiceSequenceAdmin,
                       PendingAggregateDeltaAdmin)
from .client import ClientAdmin
from .inlines import InvoiceItemInline, PaymentInline, TimeEntryInline
from .invoice import InvoiceAdmin, PaymentAdmin
from .mixins import OwnerAdminMixin
from .project import ProjectAdmin, TimeEntryAdmin
from .ReadOnly import ReadOnlyAdmin
