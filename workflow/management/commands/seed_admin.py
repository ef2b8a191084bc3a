# workflow/management/commands/seed_admin.py
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from workflow.models import User


class Command(BaseCommand):
    help = "Ensure the super admin account exists (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--username", default=None)
        parser.add_argument("--email", default=None)
        parser.add_argument("--password", default=None)
        parser.add_argument("--reset-password", action="store_true",
                            help="Overwrite the password of an existing account.")

    def handle(self, *args, **opts):
        username = opts["username"] or settings.SEED_ADMIN_USERNAME
        email = opts["email"] or settings.SEED_ADMIN_EMAIL
        password = opts["password"] or settings.SEED_ADMIN_PASSWORD

        user = User.objects.filter(username=username).first()
        if user is None:
            if not password:
                raise CommandError("No password given; pass --password or set SEED_ADMIN_PASSWORD")
            User.objects.create_superuser(
                username=username, email=email, password=password, role=User.ROLE_SUPER_ADMIN,
            )
            self.stdout.write(self.style.SUCCESS(f"created: {username}"))
            return

        fields = []
        if user.role != User.ROLE_SUPER_ADMIN:
            user.role = User.ROLE_SUPER_ADMIN
            fields.append("role")
        if not (user.is_staff and user.is_superuser and user.is_active):
            user.is_staff = user.is_superuser = user.is_active = True
            fields += ["is_staff", "is_superuser", "is_active"]
        if opts["reset_password"] and password:
            user.set_password(password)
            fields.append("password")
        if fields:
            user.save(update_fields=fields)
        self.stdout.write(self.style.SUCCESS(f"ok: {username} (super_admin)"))
