from django.core.management.base import BaseCommand

from services.matching import process_due_escalations
from services.job_management import expire_overdue_quick_book_jobs


class Command(BaseCommand):
    help = "Run overdue broadcast escalations and expire quick-book jobs past their deadline."

    def add_arguments(self, parser):
        parser.add_argument(
            "--skip-expiry",
            action="store_true",
            help="Only run broadcast escalations.",
        )

    def handle(self, *args, **options):
        due, advanced = process_due_escalations()
        expired = 0 if options["skip_expiry"] else expire_overdue_quick_book_jobs()

        self.stdout.write(
            self.style.SUCCESS(
                f"Advanced {advanced} of {due} due escalation(s); expired {expired} quick-book job(s)."
            )
        )
