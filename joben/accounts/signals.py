import logging

from django.contrib.auth.signals import user_logged_in
from django.dispatch import receiver

from .session import EnsureStatus, ensure_profile

logger = logging.getLogger(__name__)


@receiver(user_logged_in)
def ensure_profile_on_login(sender, request, user, **kwargs):
    result = ensure_profile(user)
    if result.status == EnsureStatus.FAILED:
        logger.warning("Profile unavailable after login: user_id=%s error=%s", user.pk, result.error)
