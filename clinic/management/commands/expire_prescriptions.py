from django.core.management.base import BaseCommand

from clinic.services.prescriptions import expire_overdue


class Command(BaseCommand):
    help = "Mark pending or sent prescriptions past their expiry date as expired."

    def handle(self, *args, **opts):
        expired = expire_overdue()
        for pid in expired:
            self.stdout.write(f"expired: {pid}")
        self.stdout.write(self.style.SUCCESS(f"{len(expired)} prescription(s) expired."))
