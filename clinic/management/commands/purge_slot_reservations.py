from django.core.management.base import BaseCommand
from django.utils import timezone

from clinic.models import SlotReservation


class Command(BaseCommand):
    help = "Delete slot reservations whose hold has expired."

    def handle(self, *args, **opts):
        deleted, _ = SlotReservation.objects.filter(expires_at__lte=timezone.now()).delete()
        self.stdout.write(self.style.SUCCESS(f"{deleted} expired reservation(s) removed."))
