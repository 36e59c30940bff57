# clinic/management/commands/ensure_test_users.py
from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand

from clinic.models import User

TEST_SET = [
    ("admin1", User.ROLE_ADMIN),
    ("desk1", User.ROLE_DESK),
    ("nurse1", User.ROLE_STAFF),
]


class Command(BaseCommand):
    help = "Ensure one test user per role exists with password=123456 (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="123456")

    def handle(self, *args, **opts):
        password = opts["password"]
        for username, role in TEST_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"role": role, "password": make_password(password), "is_active": True},
            )
            if not created:
                # reset password, role and active flag
                u.password = make_password(password)
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "role", "is_active"])
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
