from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from billing_core.services.aggregates import retry_pending_deltas
from billing_core.services.reconciliation import reconcile_aggregates


class Command(BaseCommand):
    help = (
        "Recompute client revenue/project counts and project hours/earnings "
        "from the ledger, and fix any stored total that drifted."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--owner",
            help="Username whose clients and projects to check (default: everyone).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report divergences without writing anything.",
        )
        parser.add_argument(
            "--retry-pending",
            action="store_true",
            help="Re-apply queued aggregate updates before reconciling.",
        )

    def handle(self, *args, **options):
        owner = None
        if options["owner"]:
            User = get_user_model()
            try:
                owner = User.objects.get(**{User.USERNAME_FIELD: options["owner"]})
            except User.DoesNotExist:
                raise CommandError(f"No user {options['owner']!r}")

        if options["retry_pending"] and not options["dry_run"]:
            resolved = retry_pending_deltas()
            self.stdout.write(self.style.NOTICE(f"Applied {resolved} queued update(s)."))

        divergences = reconcile_aggregates(owner=owner, fix=not options["dry_run"])
        for d in divergences:
            self.stdout.write(
                f"{d.target_type} {d.target_id} {d.field}: "
                f"stored={d.stored} expected={d.expected}"
            )

        if not divergences:
            self.stdout.write(self.style.SUCCESS("All totals consistent."))
        elif options["dry_run"]:
            self.stdout.write(
                self.style.WARNING(f"{len(divergences)} divergence(s) found (dry run).")
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(f"Corrected {len(divergences)} divergence(s).")
            )
