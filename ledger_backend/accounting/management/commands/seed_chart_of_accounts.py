# accounting/management/commands/seed_chart_of_accounts.py

from django.core.management.base import BaseCommand

from accounting.services.chart_provisioning import DEFAULT_CHART, provision_chart


class Command(BaseCommand):
    help = "Seed the default hierarchical chart of accounts (idempotent, parents first)"

    def handle(self, *args, **options):
        self.stdout.write("Seeding chart of accounts...")

        result = provision_chart(DEFAULT_CHART)

        self.stdout.write(
            self.style.SUCCESS(
                f"✔ Chart of accounts seeded ({result['created']} new accounts, "
                f"{result['existing']} already present)."
            )
        )
