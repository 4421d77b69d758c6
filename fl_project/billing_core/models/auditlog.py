from django.conf import settings
from django.db import models
from ..managers import OwnerManager


# ---------- Audit / Event log ----------
class AuditLog(models.Model):
    # Whose books the event touched
    # (nullable for system runs such as the nightly reconciliation)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL,
        related_name="audit_logs",
    )
    # Common choices: create, update, delete, stop_timer, record_payment
    action = models.CharField(max_length=50)
    # e.g. "Invoice", "TimeEntry", "Client"
    object_type = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    # Before/after details, JSON
    changes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = OwnerManager()

    class Meta:
        indexes = [
            models.Index(fields=["owner", "created_at"], name="auditlog_owner_created_idx"),
            models.Index(fields=["object_type", "object_id"], name="auditlog_object_idx"),
        ]

    def __str__(self):
        time = self.created_at
        return f"[{time:%Y-%m-%d %H:%M}] {self.owner} {self.action} {self.object_type}({self.object_id})"
