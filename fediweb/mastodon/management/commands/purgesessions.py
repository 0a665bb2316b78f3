from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from ...models import Session


class Command(BaseCommand):
    help = "Delete sessions that never completed signing in."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            "-d",
            type=int,
            default=7,
            help="Only delete sessions created more than this many days ago.",
        )
        parser.add_argument(
            "--dry-run",
            "-n",
            action="store_true",
            help="Report how many would be deleted without deleting them.",
        )

    def handle(self, *args, **options):
        if options["days"] < 0:
            raise CommandError("--days must not be negative")
        cutoff = timezone.now() - timedelta(days=options["days"])
        sessions = Session.objects.filter(access_token="", created__lt=cutoff)
        count = sessions.count()
        if not options["dry_run"]:
            sessions.delete()
            self.stdout.write(f"Deleted {count} incomplete session(s)")
        else:
            self.stdout.write(f"Would delete {count} incomplete session(s)")
