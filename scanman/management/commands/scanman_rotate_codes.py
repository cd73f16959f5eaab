"""Management command to rotate codes older than ROTATION_INTERVAL_DAYS."""

from django.core.management.base import BaseCommand

from scanman.services import rotation


class Command(BaseCommand):
    help = "Replace ACTIVE codes older than ROTATION_INTERVAL_DAYS with fresh ones"

    def add_arguments(self, parser):
        parser.add_argument(
            "--limit",
            type=int,
            default=None,
            help="Rotate at most this many codes",
        )

    def handle(self, *args, **options):
        successors = rotation.rotate_due_codes(limit=options["limit"])
        self.stdout.write(self.style.SUCCESS(f"Rotated {len(successors)} codes."))
