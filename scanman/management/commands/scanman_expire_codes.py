"""Management command to expire overdue codes."""

from django.core.management.base import BaseCommand

from scanman.services import issuer


class Command(BaseCommand):
    help = "Mark ACTIVE codes past their expiry date as EXPIRED"

    def handle(self, *args, **options):
        expired = issuer.expire_overdue()
        self.stdout.write(self.style.SUCCESS(f"Expired {expired} codes."))
