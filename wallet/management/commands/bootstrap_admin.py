"""
Management command granting the first admin role.

Only the account whose email matches STOREFRONT_BOOTSTRAP_ADMIN_EMAIL can be
promoted this way.
"""

from django.conf import settings
from django.contrib.auth.models import User
from django.core.management.base import BaseCommand, CommandError

from wallet.models import Role
from wallet.roles import grant_role, lookup_admin


class Command(BaseCommand):
    help = 'Grant the admin role to the designated bootstrap admin account'

    def add_arguments(self, parser):
        parser.add_argument('username', help='Username of the account to promote')

    def handle(self, *args, **options):
        allowed = settings.STOREFRONT_BOOTSTRAP_ADMIN_EMAIL.strip().lower()
        if not allowed:
            raise CommandError('STOREFRONT_BOOTSTRAP_ADMIN_EMAIL is not configured')

        try:
            user = User.objects.get(username=options['username'])
        except User.DoesNotExist:
            raise CommandError(f"User {options['username']} not found")

        if user.email.strip().lower() != allowed:
            raise CommandError('Only the designated admin email can be granted the admin role')

        if lookup_admin(user):
            self.stdout.write(f"{user.username} is already an admin")
            return

        grant_role(user, Role.ADMIN)
        self.stdout.write(self.style.SUCCESS(f"Granted admin role to {user.username}"))
