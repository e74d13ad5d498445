# clinic/management/commands/ensure_staff_users.py
from django.core.management.base import BaseCommand
from django.db import transaction

from clinic.models import EmployeeProfile, User
from clinic.services import accounts

SEED_SET = [
    # (email, name, role, extra)
    ("admin@carehub.local", "System Admin", User.ROLE_ADMIN, {}),
    ("manager@carehub.local", "Health Manager", User.ROLE_MANAGER, {}),
    ("doctor@carehub.local", "Default Doctor", User.ROLE_DOCTOR, {
        "specialization": "General Medicine",
        "licenseNumber": "LIC-SEED-0001",
        "experience": 5,
        "consultationFee": 150,
    }),
    ("nurse@carehub.local", "Default Nurse", User.ROLE_NURSE, {}),
    ("pharmacist@carehub.local", "Default Pharmacist", User.ROLE_PHARMACIST, {}),
    ("staff@carehub.local", "Front Desk", User.ROLE_STAFF, {}),
]


class Command(BaseCommand):
    help = "Ensure one account per staff role exists (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="ChangeMe123", help="Password set on every seeded account.")

    def handle(self, *args, **opts):
        password = opts["password"]
        for email, name, role, extra in SEED_SET:
            with transaction.atomic():
                user = User.objects.filter(username=email).first()
                if user is None:
                    user = accounts.register_employee({
                        "email": email, "name": name, "password": password, "userType": role, **extra,
                    })
                    verb = "created"
                else:
                    # reset password, activation and role
                    user.set_password(password)
                    user.role = role
                    user.is_active = True
                    user.save(update_fields=["password", "role", "is_active"])
                    EmployeeProfile.objects.filter(user=user).update(status=EmployeeProfile.STATUS_ACTIVE)
                    verb = "reset"
            self.stdout.write(self.style.SUCCESS(f"{verb}: {email} ({role}) {user.public_id}"))
        self.stdout.write(self.style.SUCCESS("All staff users ensured."))
