# clinic/management/commands/ensure_test_profiles.py
from datetime import date

from django.core.management.base import BaseCommand

from clinic.models import Gender, Role, UserProfile

TEST_SET = [
    ("test_patient_1", Role.PATIENT),
    ("test_doctor_1", Role.DOCTOR),
    ("test_admin_1", Role.ADMIN),
    ("test_caretaker_1", Role.CARETAKER),
    ("test_lab_reporter_1", Role.LAB_REPORTER),
    ("test_nurse_1", Role.NURSE),
]


class Command(BaseCommand):
    help = "Ensure one complete, active test profile exists per role (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--domain", default="carelink.test", help="Email domain for the test profiles")

    def handle(self, *args, **opts):
        for external_id, role in TEST_SET:
            profile, created = UserProfile.objects.update_or_create(
                external_id=external_id,
                defaults={
                    "email": f"{external_id}@{opts['domain']}",
                    "name": f"Test {role.label}",
                    "phone": "5550000000",
                    "role": role,
                    "date_of_birth": date(1990, 1, 1),
                    "gender": Gender.OTHER,
                    "is_active": True,
                },
            )
            verb = "created" if created else "ok"
            self.stdout.write(self.style.SUCCESS(f"{verb}: {external_id} ({role.value})"))
        self.stdout.write(self.style.SUCCESS("All test profiles ensured."))
