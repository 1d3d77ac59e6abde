"""
User roles and the admin role cache.

`is_admin` is asked on every admin console request, so the answer is cached
per user for `ADMIN_ROLE_CACHE_TTL` seconds. The cache entry is dropped
explicitly on logout and whenever the user's role rows change.
"""

import logging

from django.conf import settings
from django.contrib.auth.models import User
from django.contrib.auth.signals import user_logged_out
from django.core.cache import cache
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from .models import UserRole, Role

logger = logging.getLogger(__name__)


class AdminRoleCache:
    """
    Read-through cache of `{user_id: is_admin}` with expiry.

    Backed by Django's default cache, which is Redis outside tests, so an
    invalidation in one worker process is seen by all of them.
    """

    key_prefix = 'wallet:is_admin'

    def __init__(self, backend=None):
        self.backend = backend or cache

    @property
    def ttl(self) -> int:
        return settings.ADMIN_ROLE_CACHE_TTL

    def key(self, user_id) -> str:
        return f"{self.key_prefix}:{user_id}"

    def get(self, user) -> bool:
        """Return the cached role for `user`, looking it up on a miss."""
        if user is None or not user.is_authenticated:
            return False

        cached = self.backend.get(self.key(user.pk))
        if cached is not None:
            return cached

        result = lookup_admin(user)
        self.backend.set(self.key(user.pk), result, self.ttl)
        return result

    def invalidate(self, user_id) -> None:
        """Drop the cached role so the next check hits the database."""
        self.backend.delete(self.key(user_id))
        logger.debug(f"Invalidated admin role cache for user {user_id}")


admin_role_cache = AdminRoleCache()


def lookup_admin(user) -> bool:
    """Uncached role check against the database."""
    if user.is_superuser:
        return True
    return UserRole.objects.filter(user=user, role=Role.ADMIN).exists()


def is_admin(user) -> bool:
    return admin_role_cache.get(user)


def grant_role(user, role: str = Role.ADMIN) -> UserRole:
    """Grant `role` to `user`; granting an existing role is a no-op."""
    user_role, created = UserRole.objects.get_or_create(user=user, role=role)
    if created:
        logger.info(f"Granted role {role} to user {user.pk}")
    return user_role


def revoke_role(user, role: str = Role.ADMIN) -> None:
    for user_role in UserRole.objects.filter(user=user, role=role):
        user_role.delete()
    logger.info(f"Revoked role {role} from user {user.pk}")


@receiver(user_logged_out)
def invalidate_on_logout(sender, request, user, **kwargs):
    if user is not None:
        admin_role_cache.invalidate(user.pk)


@receiver(post_save, sender=UserRole)
@receiver(post_delete, sender=UserRole)
def invalidate_on_role_change(sender, instance, **kwargs):
    admin_role_cache.invalidate(instance.user_id)


@receiver(post_save, sender=User)
def invalidate_on_user_change(sender, instance, created, **kwargs):
    # `is_superuser` lives on the user row
    if not created:
        admin_role_cache.invalidate(instance.pk)
