# billing/management/commands/generate_rent_periods.py

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from billing.services import calculator
from billing.services.ledger_service import ensure_first_period, generate_recurring_period
from properties.models import TenantProfile


class Command(BaseCommand):
    help = "Create the rent period for a month for every active tenant profile moved in before it."

    def add_arguments(self, parser):
        parser.add_argument("--year", type=int, required=True)
        parser.add_argument("--month", type=int, required=True)
        parser.add_argument("--dry-run", action="store_true", help="Show actions without writing to DB")

    def handle(self, *args, **options):
        year = options["year"]
        month = options["month"]
        dry_run = bool(options.get("dry_run"))

        if not 1 <= month <= 12:
            raise CommandError("--month must be between 1 and 12")
        if year < 2000:
            raise CommandError("--year must be 2000 or later")

        month_start, _ = calculator.billing_window(year, month)

        profiles = (
            TenantProfile.objects.filter(is_active=True, move_in_date__isnull=False, monthly_rent__gt=0)
            .select_related("tenant")
            .order_by("created_at")
        )

        created = 0
        existing = 0
        first_periods = 0

        for profile in profiles:
            move_in = profile.move_in_date
            if (move_in.year, move_in.month) == (year, month):
                if dry_run:
                    self.stdout.write(f"[dry-run] first period for {profile.tenant}")
                    continue
                ensure_first_period(profile)
                first_periods += 1
                continue

            if move_in > month_start:
                continue

            if dry_run:
                self.stdout.write(f"[dry-run] {month:02d}/{year} period for {profile.tenant}")
                continue

            _, was_created = generate_recurring_period(profile, year, month)
            if was_created:
                created += 1
            else:
                existing += 1

        self.stdout.write(
            self.style.SUCCESS(
                f"Rent periods {month:02d}/{year}: created={created} "
                f"existing={existing} first_periods={first_periods} dry_run={dry_run}"
            )
        )
