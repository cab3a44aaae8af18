from django.core.management.base import BaseCommand, CommandError

from bookings.dependencies import get_offer_service
from bookings.domain import Err


class Command(BaseCommand):
    help = "Mark pending offers whose validity has passed as expired."

    def handle(self, *args, **options):
        result = get_offer_service().expire_stale_offers()
        if isinstance(result, Err):
            raise CommandError(result.message)
        expired = result.value
        for offer in expired:
            self.stdout.write(f"Expired offer {offer.id}")
        self.stdout.write(self.style.SUCCESS(f"{len(expired)} offer(s) expired"))
