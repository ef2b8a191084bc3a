from django.core.management.base import BaseCommand

from workflow.services.sync import reconcile


class Command(BaseCommand):
    help = "Repair one-sided Case/Report links and patients left incomplete after approval."

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="Report what would change without writing.")

    def handle(self, *args, **opts):
        dry_run = opts["dry_run"]
        result = reconcile(dry_run=dry_run)
        prefix = "would fix" if dry_run else "fixed"
        self.stdout.write(f"dangling case links cleared: {len(result.dangling_cleared)}")
        self.stdout.write(f"case links set: {len(result.case_links_set)}")
        self.stdout.write(f"report links set: {len(result.report_links_set)}")
        self.stdout.write(f"patients completed: {len(result.patients_completed)}")
        self.stdout.write(self.style.SUCCESS(f"{prefix} {result.total} record(s)"))
