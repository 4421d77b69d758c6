from .aggregate import PendingAggregateDelta
from .auditlog import AuditLog
from .client import Client
from .invoice import Invoice, InvoiceItem
from .payment import Payment
from .project import Project
from .sequence import InvoiceSequence
from .time_entry import TimeEntry
