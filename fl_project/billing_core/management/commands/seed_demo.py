import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from billing_core.models import Client
from billing_core.services import (create_client, create_invoice, create_project,
                                   create_time_entry, record_payment, send_invoice)

User = get_user_model()


class Command(BaseCommand):
    help = "Create a demo freelancer with clients, projects, logged time and invoices."

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--username", default="demo", help="Username for the demo user."
        )
        parser.add_argument(
            "--password", default="demo123", help="Password for the demo user."
        )

    @transaction.atomic
    def handle(self, *args, **options):
        # Read arguments from add_arguments()
        username = options["username"]
        password = options["password"]

        # 1. Create user
        user, created = User.objects.get_or_create(
            username=username,
            defaults={"email": f"{username}@example.com"},
        )
        if created:  # if user newly created
            user.set_password(password)
            user.save()
        self.stdout.write(
            self.style.SUCCESS(f"Created user: {user.username} (pw={password})")
        )

        if Client.objects.for_owner(user).exists():
            self.stdout.write(self.style.NOTICE("Demo data already present, skipping."))
            return

        # 2. Clients and projects (every write goes through the services
        # so the derived totals start out right)
        acme = create_client(
            user, name="Acme Corp", email="billing@acme.example", company_name="Acme"
        )
        globex = create_client(user, name="Globex", email="ap@globex.example")

        site = create_project(
            user, acme, "Website redesign",
            status="in-progress", hourly_rate=Decimal("100.00"),
        )
        create_project(
            user, globex, "Data migration",
            status="planning", hourly_rate=Decimal("120.00"),
        )
        self.stdout.write(self.style.SUCCESS("Created 2 clients and 2 projects"))

        # 3. Logged time: three 90-minute sessions
        today = timezone.localdate()
        entries = []
        for days_ago in (3, 2, 1):
            start = timezone.make_aware(
                datetime.datetime.combine(
                    today - datetime.timedelta(days=days_ago), datetime.time(10, 0)
                )
            )
            entries.append(
                create_time_entry(
                    user, site, "Design work", start,
                    end_time=start + datetime.timedelta(minutes=90),
                )
            )

        # 4. One paid invoice for the logged time, one still open
        paid = create_invoice(
            user,
            acme,
            items=[{"description": "Design work", "quantity": "4.5", "rate": "100"}],
            tax=10,
            due_date=today + datetime.timedelta(days=14),
            project=site,
            time_entries=[e.pk for e in entries],
        )
        send_invoice(user, paid.pk)
        record_payment(paid.pk, owner=user, method="bank_transfer", transaction_id="DEMO-1")

        open_inv = create_invoice(
            user,
            globex,
            items=[{"description": "Discovery workshop", "quantity": 1, "rate": "600"}],
            due_date=today + datetime.timedelta(days=30),
        )
        send_invoice(user, open_inv.pk)

        self.stdout.write(
            self.style.SUCCESS(
                f"Created invoices {paid.invoice_number} (paid) and "
                f"{open_inv.invoice_number} (sent)"
            )
        )
