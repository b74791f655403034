"""
Solicitação de leads do pool compartilhado, consumindo créditos do consultor.
"""
import logging

from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from . import data_access
from .exceptions import DataAccessError, InsufficientCreditsError, LeadPermissionError, ValidationError
from .history import HistoryEntry
from .models import AuditLog, Lead, LeadStatus, UserCredit

logger = logging.getLogger(__name__)

ORIGEM_SOLICITACAO = "Sistema - Solicitação"


def request_leads(user, count, convenio=None, ddds=None, tags=None):
    """
    Retira até 'count' leads do pool para o usuário.

    Levanta InsufficientCreditsError sem retirar nada se o saldo for zero ou
    menor que o pedido. Se o pool tiver menos leads, só o que foi retirado é
    debitado; pool vazio devolve lista vazia e não debita.
    """
    try:
        count = int(count)
    except (TypeError, ValueError):
        raise ValidationError("Quantidade inválida.", field='count')
    if count < 1:
        raise ValidationError("Solicite pelo menos 1 lead.", field='count')

    balance = data_access.get_user_credits(user)
    if balance <= 0:
        raise InsufficientCreditsError(
            "Seus créditos acabaram. Solicite ao administrador.", balance=balance, requested=count
        )
    if count > balance:
        raise InsufficientCreditsError(
            f"Você só possui {balance} créditos.", balance=balance, requested=count
        )

    try:
        with transaction.atomic():
            credit = UserCredit.objects.select_for_update().get(user=user)
            if credit.balance < count:
                raise InsufficientCreditsError(
                    f"Você só possui {credit.balance} créditos.", balance=credit.balance, requested=count
                )

            drawn = data_access.draw_pool_leads(user, count, convenio=convenio, ddds=ddds, tags=tags)
            if not drawn:
                logger.info("Pool sem leads para %s (convenio=%s, ddds=%s, tags=%s)", user.email, convenio, ddds, tags)
                return []

            requested_at = timezone.now()
            leads = []
            for row in drawn:
                entry = HistoryEntry.by(user, 'created', timestamp=requested_at.isoformat(),
                                        note='Lead solicitado do sistema')
                leads.append(Lead(
                    name=row.name,
                    cpf=row.cpf or '',
                    phone=row.phone,
                    phone2=row.phone2 or None,
                    convenio=row.convenio,
                    tag=row.tag or None,
                    status=LeadStatus.NEW_LEAD,
                    created_by=user,
                    assigned_to=user,
                    origem_lead=ORIGEM_SOLICITACAO,
                    banco_operacao=row.banco,
                    requested_at=requested_at,
                    history=[entry.as_dict()],
                ))
            created = Lead.objects.bulk_create(leads)

            UserCredit.objects.filter(pk=credit.pk).update(balance=F('balance') - len(created))
    except DatabaseError as e:
        logger.exception("Erro ao solicitar leads para %s", user.email)
        raise DataAccessError("Erro ao solicitar leads.") from e

    logger.info("%s leads entregues para %s", len(created), user.email)
    return created


def grant_credits(user, amount, actor):
    """
    Adiciona (amount > 0) ou remove (amount < 0) créditos de um usuário.
    O saldo nunca fica negativo.
    """
    if actor is None or not (actor.is_admin or actor.is_superuser):
        raise LeadPermissionError("Apenas administradores podem gerenciar créditos.")
    try:
        amount = int(amount)
    except (TypeError, ValueError):
        raise ValidationError("Quantidade inválida.", field='amount')
    if amount == 0:
        raise ValidationError("Informe uma quantidade diferente de zero.", field='amount')

    try:
        with transaction.atomic():
            credit, _ = UserCredit.objects.select_for_update().get_or_create(user=user)
            previous = credit.balance
            credit.balance = max(0, previous + amount)
            credit.save(update_fields=['balance', 'updated_at'])

            AuditLog.objects.create(
                user=actor,
                action="gerenciar_creditos",
                details={
                    "target_user": user.email,
                    "amount": amount,
                    "previous_balance": previous,
                    "new_balance": credit.balance,
                }
            )
    except DatabaseError as e:
        logger.exception("Erro ao gerenciar créditos de %s", user.email)
        raise DataAccessError("Erro ao atualizar créditos.") from e

    return credit.balance
