class BillingError(Exception):
    """Base class for per-request failures raised by the billing services."""
    pass


class NotFound(BillingError):
    """Raised when a referenced client, project, invoice or entry is absent."""
    pass


class ConflictError(BillingError):
    """Raised when a request collides with the current state of a record."""
    pass


class AlreadyStopped(ConflictError):
    """Raised when stopping a timer whose entry already has an end time."""
    pass


class InvalidTransition(ConflictError):
    """Raised when an invoice status change is not allowed from its status."""
    pass


class AggregateSyncFailure(BillingError):
    """Raised when a derived total could not be updated after its primary
    write succeeded. Caught by the aggregate maintainer, never by callers."""

    def __init__(self, target_type, target_id, deltas, event, cause=None):
        self.target_type = target_type
        self.target_id = target_id
        self.deltas = deltas
        self.event = event
        self.cause = cause
        super().__init__(
            f"Could not apply {event} delta {deltas} to {target_type} {target_id}: {cause}"
        )
