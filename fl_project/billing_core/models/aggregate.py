from django.db import models

TARGET_TYPE_CHOICES = [
    ("client", "Client"),
    ("project", "Project"),
]


# ---------- Queued aggregate deltas ----------
class PendingAggregateDelta(models.Model):
    """A derived-total update that failed after its primary write succeeded.

    Retried by retry_pending_deltas(); a reconciliation pass over the same
    target marks it resolved because the full recompute already covers it.
    """

    target_type = models.CharField(max_length=10, choices=TARGET_TYPE_CHOICES)
    target_id = models.BigIntegerField()
    # field name -> delta, decimals kept as strings
    deltas = models.JSONField()
    # Which event produced it (e.g. "timer_stopped", "invoice_paid")
    event = models.CharField(max_length=50)
    error = models.TextField(blank=True, default="")
    attempts = models.IntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ("created_at", "id")
        indexes = [
            models.Index(fields=["target_type", "target_id"], name="pending_delta_target_idx"),
            models.Index(fields=["resolved_at"], name="pending_delta_resolved_idx"),
        ]

    def __str__(self):
        state = "resolved" if self.resolved_at else "pending"
        return f"{self.event} {self.target_type}#{self.target_id} {self.deltas} ({state})"
