# accounting/management/commands/seed_journal_templates.py

from django.core.management.base import BaseCommand, CommandError

from accounting.services.exceptions import LedgerConfigurationError
from accounting.services.template_catalog import provision_templates


class Command(BaseCommand):
    help = "Seed the default journal entry templates (requires seed_chart_of_accounts)"

    def handle(self, *args, **options):
        self.stdout.write("Seeding journal templates...")

        try:
            result = provision_templates()
        except LedgerConfigurationError as exc:
            raise CommandError(f"{exc}. Run seed_chart_of_accounts first.") from exc

        for code, errors in result["invalid"].items():
            self.stdout.write(self.style.WARNING(f"  {code}: {'; '.join(errors)}"))

        self.stdout.write(
            self.style.SUCCESS(
                f"✔ Journal templates seeded ({len(result['created'])} new, "
                f"{len(result['existing'])} already present)."
            )
        )
