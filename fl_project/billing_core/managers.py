from django.db import models

# -----------------------------------------
# Enforce owner scoping across all models
# that belong to a user account
# -----------------------------------------
class OwnerQuerySet(models.QuerySet):
    def for_owner(self, owner):
        return self.filter(owner=owner)

    def active(self, owner):
        return self.filter(owner=owner, status="active")


# Attach OwnerQuerySet to .objects
class OwnerManager(models.Manager):

    def get_queryset(self):
        return OwnerQuerySet(self.model, using=self._db)

    def for_owner(self, owner):
        return self.get_queryset().for_owner(owner)

    def active(self, owner):
        return self.get_queryset().active(owner)


# ---------- Time entries ----------
class TimeEntryQuerySet(OwnerQuerySet):
    # The running entry is the one without an end time
    def running(self):
        return self.filter(end_time__isnull=True)

    def completed(self):
        return self.filter(end_time__isnull=False)


class TimeEntryManager(OwnerManager):

    def get_queryset(self):
        return TimeEntryQuerySet(self.model, using=self._db)

    def running(self):
        return self.get_queryset().running()

    def completed(self):
        return self.get_queryset().completed()


# ---------- Invoices ----------
class InvoiceQuerySet(OwnerQuerySet):
    def paid(self):
        return self.filter(status="paid")

    def pending(self):
        # issued but not settled yet
        return self.filter(status__in=["sent", "overdue"])


class InvoiceManager(OwnerManager):

    def get_queryset(self):
        return InvoiceQuerySet(self.model, using=self._db)

    def paid(self):
        return self.get_queryset().paid()

    def pending(self):
        return self.get_queryset().pending()
