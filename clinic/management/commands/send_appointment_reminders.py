from django.core.management.base import BaseCommand

from clinic.services.appointments import send_reminders


class Command(BaseCommand):
    help = "Notify patients and doctors of approved or confirmed appointments due within 24 or 2 hours."

    def handle(self, *args, **opts):
        sent = send_reminders()
        for appointment_id, kind in sent:
            self.stdout.write(f"{kind}: {appointment_id}")
        self.stdout.write(self.style.SUCCESS(f"{len(sent)} reminder(s) sent."))
