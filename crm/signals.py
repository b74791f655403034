import logging

from django.contrib.auth.signals import user_logged_in, user_logged_out
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import AuditLog, User, UserCredit

logger = logging.getLogger(__name__)


@receiver(user_logged_in)
def log_user_login(sender, request, user, **kwargs):
    """Regista um log quando um utilizador faz login."""
    AuditLog.objects.create(
        user=user,
        action="login_success",
        details={"ip_address": request.META.get('REMOTE_ADDR') if request else None}
    )


@receiver(user_logged_out)
def log_user_logout(sender, request, user, **kwargs):
    if user:  # O 'user' pode ser None se a sessão expirou
        AuditLog.objects.create(
            user=user,
            action="logout",
            details={"ip_address": request.META.get('REMOTE_ADDR') if request else None}
        )


@receiver(post_save, sender=User)
def create_user_credit(sender, instance, created, **kwargs):
    """Todo usuário novo começa com saldo zero de créditos de leads."""
    if created:
        UserCredit.objects.get_or_create(user=instance)
        logger.info("Carteira de créditos criada para %s", instance.email)
