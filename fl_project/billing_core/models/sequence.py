from django.db import models


# ---------- Numbering sequence ----------
class InvoiceSequence(models.Model):
    """A named counter row. Incremented with a single UPDATE so two
    concurrent callers can never read the same value."""

    name = models.CharField(max_length=50, unique=True)
    last_value = models.BigIntegerField(default=0)

    def __str__(self):
        return f"{self.name}={self.last_value}"
