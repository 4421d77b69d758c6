import decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="InvoiceSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=50, unique=True)),
                ("last_value", models.BigIntegerField(default=0)),
            ],
        ),
        migrations.CreateModel(
            name="PendingAggregateDelta",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("target_type", models.CharField(choices=[("client", "Client"), ("project", "Project")], max_length=10)),
                ("target_id", models.BigIntegerField()),
                ("deltas", models.JSONField()),
                ("event", models.CharField(max_length=50)),
                ("error", models.TextField(blank=True, default="")),
                ("attempts", models.IntegerField(default=1)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ("created_at", "id"),
                "indexes": [
                    models.Index(fields=["target_type", "target_id"], name="pending_delta_target_idx"),
                    models.Index(fields=["resolved_at"], name="pending_delta_resolved_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("owner", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="audit_logs", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["owner", "created_at"], name="auditlog_owner_created_idx"),
                    models.Index(fields=["object_type", "object_id"], name="auditlog_object_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Client",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("email", models.EmailField(max_length=254)),
                ("phone", models.CharField(blank=True, default="", max_length=50)),
                ("company_name", models.CharField(blank=True, default="", max_length=200)),
                ("street", models.CharField(blank=True, default="", max_length=200)),
                ("city", models.CharField(blank=True, default="", max_length=100)),
                ("state", models.CharField(blank=True, default="", max_length=100)),
                ("zip_code", models.CharField(blank=True, default="", max_length=20)),
                ("country", models.CharField(blank=True, default="", max_length=100)),
                ("status", models.CharField(choices=[("active", "Active"), ("inactive", "Inactive"), ("archived", "Archived")], default="active", max_length=10)),
                ("notes", models.TextField(blank=True, default="")),
                ("total_revenue", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=14)),
                ("project_count", models.IntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="clients", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["owner", "status"], name="client_owner_status_idx"),
                    models.Index(fields=["owner", "total_revenue"], name="client_owner_revenue_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("total_revenue__gte", 0), ("project_count__gte", 0)), name="client_non_negative_aggregates"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Project",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("status", models.CharField(choices=[("planning", "Planning"), ("in-progress", "In progress"), ("on-hold", "On hold"), ("completed", "Completed"), ("cancelled", "Cancelled")], default="planning", max_length=20)),
                ("priority", models.CharField(choices=[("low", "Low"), ("medium", "Medium"), ("high", "High"), ("urgent", "Urgent")], default="medium", max_length=10)),
                ("start_date", models.DateField(blank=True, null=True)),
                ("end_date", models.DateField(blank=True, null=True)),
                ("budget", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=14)),
                ("hourly_rate", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=10)),
                ("billing_type", models.CharField(choices=[("hourly", "Hourly"), ("fixed", "Fixed price"), ("retainer", "Retainer")], default="hourly", max_length=10)),
                ("tags", models.JSONField(blank=True, default=list)),
                ("total_minutes", models.IntegerField(default=0)),
                ("total_earned", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=14)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("client", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="projects", to="billing_core.client")),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="projects", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["owner", "status"], name="project_owner_status_idx"),
                    models.Index(fields=["owner", "client"], name="project_owner_client_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("hourly_rate__gte", 0), ("budget__gte", 0)), name="project_non_negative_rates"),
                    models.CheckConstraint(condition=models.Q(("total_minutes__gte", 0), ("total_earned__gte", 0)), name="project_non_negative_aggregates"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("invoice_number", models.CharField(max_length=32, unique=True)),
                ("status", models.CharField(choices=[("draft", "Draft"), ("sent", "Sent"), ("paid", "Paid"), ("overdue", "Overdue"), ("cancelled", "Cancelled")], default="draft", max_length=10)),
                ("issue_date", models.DateField(default=django.utils.timezone.localdate)),
                ("due_date", models.DateField()),
                ("currency_code", models.CharField(default="USD", max_length=10)),
                ("subtotal", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=14)),
                ("tax", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=6)),
                ("discount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=14)),
                ("total", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=14)),
                ("notes", models.TextField(blank=True, default="")),
                ("paid_date", models.DateTimeField(blank=True, null=True)),
                ("payment_method", models.CharField(choices=[("stripe", "Stripe"), ("bank_transfer", "Bank transfer"), ("cash", "Cash"), ("check", "Check"), ("other", "Other")], default="stripe", max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("client", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="invoices", to="billing_core.client")),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="invoices", to=settings.AUTH_USER_MODEL)),
                ("project", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="invoices", to="billing_core.project")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["owner", "status"], name="inv_owner_status_idx"),
                    models.Index(fields=["owner", "paid_date"], name="inv_owner_paid_date_idx"),
                    models.Index(fields=["client", "status"], name="inv_client_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("tax__gte", 0), ("discount__gte", 0)), name="inv_non_negative_adjustments"),
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoiceItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveIntegerField(default=0)),
                ("description", models.CharField(max_length=500)),
                ("quantity", models.DecimalField(decimal_places=2, default=decimal.Decimal("1"), max_digits=12)),
                ("rate", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("amount", models.DecimalField(decimal_places=4, default=decimal.Decimal("0.0000"), max_digits=18)),
                ("invoice", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="billing_core.invoice")),
            ],
            options={
                "ordering": ("invoice", "position", "id"),
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("quantity__gte", 0), ("rate__gte", 0)), name="inv_item_non_negative_amounts"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TimeEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("description", models.CharField(max_length=500)),
                ("start_time", models.DateTimeField()),
                ("end_time", models.DateTimeField(blank=True, null=True)),
                ("duration", models.IntegerField(default=0)),
                ("hourly_rate", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=10)),
                ("amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=14)),
                ("billable", models.BooleanField(default=True)),
                ("invoiced", models.BooleanField(default=False)),
                ("tags", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("client", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="time_entries", to="billing_core.client")),
                ("invoice", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="time_entries", to="billing_core.invoice")),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="time_entries", to=settings.AUTH_USER_MODEL)),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="time_entries", to="billing_core.project")),
            ],
            options={
                "ordering": ("-start_time",),
                "indexes": [
                    models.Index(fields=["owner", "start_time"], name="time_entry_owner_start_idx"),
                    models.Index(fields=["project", "end_time"], name="time_entry_project_end_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("end_time__isnull", True)), fields=("owner",), name="uq_time_entry_one_running_per_owner"),
                    models.CheckConstraint(condition=models.Q(("hourly_rate__gte", 0)), name="time_entry_non_negative_rate"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("currency", models.CharField(default="USD", max_length=10)),
                ("method", models.CharField(choices=[("stripe", "Stripe"), ("bank_transfer", "Bank transfer"), ("cash", "Cash"), ("check", "Check"), ("other", "Other")], default="stripe", max_length=20)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("completed", "Completed"), ("failed", "Failed"), ("refunded", "Refunded")], default="pending", max_length=10)),
                ("transaction_id", models.CharField(blank=True, default="", max_length=128)),
                ("gateway_reference", models.CharField(blank=True, default="", max_length=128)),
                ("payment_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("client", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="billing_core.client")),
                ("invoice", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="payments", to="billing_core.invoice")),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="payments", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ("-payment_date",),
                "indexes": [
                    models.Index(fields=["owner", "payment_date"], name="payment_owner_date_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("transaction_id", ""), _negated=True), fields=("invoice", "transaction_id"), name="uq_payment_invoice_transaction"),
                    models.CheckConstraint(condition=models.Q(("amount__gt", decimal.Decimal("0"))), name="payment_positive_amount"),
                ],
            },
        ),
    ]
