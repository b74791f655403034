"""
Operações em massa (exclusão, transferência, importação), executadas em
lotes sequenciais. Cada lote é uma transação; se um lote falha, os anteriores
continuam gravados e os seguintes não são executados.
"""
import logging

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from .exceptions import BulkOperationError, CRMError, LeadPermissionError, ValidationError
from .history import assignment_entry
from .models import AuditLog, Lead

logger = logging.getLogger(__name__)

BATCH_SIZE = getattr(settings, 'LEADS_BATCH_SIZE', 100)


def chunked(items, size=None):
    size = size or BATCH_SIZE
    items = list(items)
    for start in range(0, len(items), size):
        yield items[start:start + size]


def run_in_batches(items, fn, size=None):
    """
    Aplica fn(lote) em cada lote, em ordem. Devolve o total processado.
    fn deve devolver quantos itens do lote foram processados.
    """
    items = list(items)
    done = 0
    for batch in chunked(items, size):
        try:
            with transaction.atomic():
                done += fn(batch) or 0
        except (DatabaseError, CRMError) as e:
            logger.exception("Lote interrompido após %s de %s itens", done, len(items))
            raise BulkOperationError(
                f"Operação interrompida: {done} de {len(items)} registros processados.",
                committed=done, total=len(items),
            ) from e
    return done


def _require_admin(actor):
    if actor is None or not (actor.is_admin or actor.is_superuser):
        raise LeadPermissionError("Apenas administradores podem executar operações em massa.")


def bulk_delete_leads(lead_ids, actor):
    _require_admin(actor)
    lead_ids = list(lead_ids)

    def delete_batch(batch):
        _, per_model = Lead.objects.filter(id__in=batch).delete()
        return per_model.get(Lead._meta.label, 0)

    deleted = run_in_batches(lead_ids, delete_batch)
    AuditLog.objects.create(
        user=actor, action="excluir_leads_em_massa",
        details={"requested": len(lead_ids), "deleted": deleted}
    )
    logger.info("%s excluiu %s leads", actor.email, deleted)
    return deleted


def bulk_reassign_leads(lead_ids, target_user, actor):
    _require_admin(actor)
    if target_user is None:
        raise ValidationError("Selecione o usuário de destino.", field='assigned_to')
    lead_ids = list(lead_ids)

    def reassign_batch(batch):
        now = timezone.now()
        leads = list(Lead.objects.select_for_update(of=('self',)).filter(id__in=batch).select_related('assigned_to'))
        for lead in leads:
            entry = assignment_entry(actor, lead.assigned_to, target_user)
            lead.history = list(lead.history or []) + [entry.as_dict()]
            lead.assigned_to = target_user
            # bulk_update não aplica auto_now
            lead.updated_at = now
        Lead.objects.bulk_update(leads, ['assigned_to', 'history', 'updated_at'])
        return len(leads)

    moved = run_in_batches(lead_ids, reassign_batch)
    AuditLog.objects.create(
        user=actor, action="transferir_leads_em_massa",
        details={"requested": len(lead_ids), "moved": moved, "target_user": target_user.email}
    )
    logger.info("%s transferiu %s leads para %s", actor.email, moved, target_user.email)
    return moved
