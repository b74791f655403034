"""
Ciclo de vida do lead.

Toda mudança de status passa por change_status(), que:
  - confere a permissão do usuário (admin, responsável ou criador do lead);
  - escolhe o handler do status de destino em TRANSITION_HANDLERS;
  - grava status + campos + uma entrada de histórico numa única transação,
    junto com os efeitos colaterais do handler (blacklist, alerta, proposta).

O grafo de transições é permissivo: qualquer status pode ir para qualquer
outro, como no seletor da tela de leads.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from django.db import DatabaseError, transaction
from django.utils.dateparse import parse_date, parse_time

from . import data_access
from .exceptions import (
    CRMError,
    DataAccessError,
    DownstreamCreationError,
    LeadPermissionError,
    ValidationError,
)
from .history import HistoryEntry, assignment_entry
from .models import Lead, LeadAlert, LeadStatus, Proposal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RejectionReason:
    code: str
    label: str
    requires_value: bool = False
    requires_bank: bool = False


REJECTION_REASONS = {
    r.code: r for r in (
        RejectionReason("valor_baixo", "Cliente achou o valor baixo", requires_value=True, requires_bank=True),
        RejectionReason("sem_interesse", "Não teve interesse"),
        RejectionReason("contratou_outro", "Já contratou com outro banco"),
        RejectionReason("outros", "Outros"),
    )
}


@dataclass
class Transition:
    """O que uma mudança de status precisa gravar além do próprio status."""
    fields: dict = field(default_factory=dict)
    note: Optional[str] = None
    payload: Optional[dict] = None
    before: Optional[Callable] = None
    after: Optional[Callable] = None


@dataclass
class TransitionResult:
    ok: bool
    lead: Lead
    error: Optional[CRMError] = None


def can_edit_lead(lead, actor):
    if actor is None or not actor.is_authenticated:
        return False
    if actor.is_admin or actor.is_superuser:
        return True
    return actor.pk in (lead.assigned_to_id, lead.created_by_id)


def _check_permission(lead, actor):
    if not can_edit_lead(lead, actor):
        raise LeadPermissionError()


def _as_date(value, field_name):
    if hasattr(value, 'year'):
        return value
    try:
        parsed = parse_date(value) if isinstance(value, str) else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"Data inválida em '{field_name}'.", field=field_name)
    return parsed


def _as_time(value, field_name):
    if hasattr(value, 'hour'):
        return value
    try:
        parsed = parse_time(value) if isinstance(value, str) else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"Horário inválido em '{field_name}'.", field=field_name)
    return parsed


def _as_money(value):
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip().replace("R$", "").replace(" ", ""))
    except InvalidOperation:
        raise ValidationError("Valor oferecido inválido.", field='offered_value')


# ---
# Handlers por status de destino
# ---
def _handle_rejection(lead, actor, extra):
    code = extra.get('reason')
    reason = REJECTION_REASONS.get(code) if isinstance(code, str) else None
    if reason is None:
        raise ValidationError("Informe o motivo da recusa.", field='reason')

    description = (extra.get('description') or '').strip()
    if not description:
        raise ValidationError("Informe a descrição da recusa.", field='description')

    offered_value = extra.get('offered_value')
    bank = (extra.get('bank') or '').strip()
    if reason.requires_value and offered_value in (None, ''):
        raise ValidationError("Informe o valor oferecido ao cliente.", field='offered_value')
    if reason.requires_bank and not bank:
        raise ValidationError("Informe o banco da oferta.", field='bank')
    offered_value = _as_money(offered_value) if offered_value not in (None, '') else None

    def add_to_blacklist(lead, actor):
        # Sem CPF não há chave para a blacklist
        if not lead.cpf:
            return
        data_access.add_to_blacklist(lead.cpf, f"recusou_oferta: {reason.label}", actor)

    return Transition(
        fields={
            'rejection_reason': reason.code,
            'rejection_offered_value': offered_value,
            'rejection_bank': bank,
            'rejection_description': description,
        },
        note=f"Recusou oferta: {reason.label}",
        payload={
            'rejection': {
                'reason': reason.code,
                'label': reason.label,
                'offered_value': str(offered_value) if offered_value is not None else None,
                'bank': bank or None,
                'description': description,
            }
        },
        after=add_to_blacklist,
    )


def _handle_future_contact(lead, actor, extra):
    if not extra.get('future_contact_date'):
        raise ValidationError("Informe a data do contato futuro.", field='future_contact_date')
    contact_date = _as_date(extra['future_contact_date'], 'future_contact_date')
    contact_time = extra.get('future_contact_time')
    contact_time = _as_time(contact_time, 'future_contact_time') if contact_time else None
    note = f"Contato futuro agendado para {contact_date:%d/%m/%Y}"

    def create_alert(lead, actor):
        LeadAlert.objects.create(
            lead=lead,
            user=lead.assigned_to or actor,
            alert_date=contact_date,
            note=extra.get('note') or note,
        )

    return Transition(
        fields={'future_contact_date': contact_date, 'future_contact_time': contact_time},
        note=note,
        payload={'schedule': {'date': contact_date.isoformat()}},
        after=create_alert,
    )


def _handle_schedule(lead, actor, extra):
    if not extra.get('schedule_date') or not extra.get('schedule_time'):
        raise ValidationError("Preencha data e horário do agendamento.", field='schedule_date')
    schedule_date = _as_date(extra['schedule_date'], 'schedule_date')
    schedule_time = _as_time(extra['schedule_time'], 'schedule_time')

    return Transition(
        fields={'future_contact_date': schedule_date, 'future_contact_time': schedule_time},
        note=f"Agendado para {schedule_date:%d/%m/%Y} às {schedule_time:%H:%M}",
        payload={'schedule': {'date': schedule_date.isoformat(), 'time': schedule_time.strftime('%H:%M')}},
    )


def _handle_closed(lead, actor, extra):
    def create_proposal(lead, actor):
        Proposal.objects.create(
            lead=lead,
            client_name=lead.name,
            cpf=lead.cpf,
            phone=lead.phone,
            convenio=lead.convenio,
            pipeline_stage="contato_iniciado",
            client_status="cliente_intencionado",
            origem_lead="leads_premium",
            created_by=actor,
            assigned_to=actor,
            company_id=actor.company_id,
            notes=f"Convertido de Leads Premium por {actor.display_name}",
        )

    return Transition(note="Cliente fechado, proposta criada", before=create_proposal)


def _handle_plain(lead, actor, extra):
    return Transition()


TRANSITION_HANDLERS = {
    LeadStatus.RECUSOU_OFERTA: _handle_rejection,
    LeadStatus.CONTATO_FUTURO: _handle_future_contact,
    LeadStatus.AGENDAMENTO: _handle_schedule,
    LeadStatus.CLIENTE_FECHADO: _handle_closed,
}


def _append_history(lead, entry):
    # Relê o histórico com lock para não perder entradas gravadas em paralelo.
    current = Lead.objects.select_for_update().only('history').get(pk=lead.pk)
    lead.history = list(current.history or []) + [entry.as_dict()]


def change_status(lead, new_status, actor, extra=None):
    """Muda o status do lead. Levanta CRMError sem alterar nada em caso de falha."""
    _check_permission(lead, actor)
    if new_status not in LeadStatus.values:
        raise ValidationError(f"Status inválido: {new_status}", field='status')

    extra = extra or {}
    new_status = LeadStatus(new_status)
    handler = TRANSITION_HANDLERS.get(new_status, _handle_plain)
    transition = handler(lead, actor, extra)

    from_status = lead.status
    note = transition.note or (
        f"Status alterado de {LeadStatus.label_for(from_status)} para {new_status.label}"
    )
    entry = HistoryEntry.by(
        actor, 'status_change',
        from_status=from_status,
        to_status=new_status.value,
        note=extra.get('note') or note,
        payload=transition.payload,
    )

    try:
        with transaction.atomic():
            if transition.before:
                try:
                    transition.before(lead, actor)
                except DatabaseError as e:
                    raise DownstreamCreationError() from e

            _append_history(lead, entry)
            for name, value in transition.fields.items():
                setattr(lead, name, value)
            lead.status = new_status
            lead.save(update_fields=['status', 'history', 'updated_at', *transition.fields])

            if transition.after:
                transition.after(lead, actor)
    except CRMError:
        lead.refresh_from_db()
        raise
    except DatabaseError as e:
        lead.refresh_from_db()
        logger.exception("Erro ao mudar status do lead %s para %s", lead.pk, new_status)
        raise DataAccessError("Erro ao atualizar lead.") from e

    logger.info("Lead %s: %s -> %s por %s", lead.pk, from_status, new_status.value, actor.email)
    return lead


def try_change_status(lead, new_status, actor, extra=None):
    try:
        return TransitionResult(ok=True, lead=change_status(lead, new_status, actor, extra))
    except CRMError as e:
        return TransitionResult(ok=False, lead=lead, error=e)


def assign_lead(lead, target_user, actor):
    """Transfere o lead para outro usuário. Não mexe no status."""
    _check_permission(lead, actor)
    if target_user is None:
        raise ValidationError("Selecione o usuário de destino.", field='assigned_to')

    entry = assignment_entry(actor, lead.assigned_to, target_user)

    try:
        with transaction.atomic():
            _append_history(lead, entry)
            lead.assigned_to = target_user
            lead.save(update_fields=['assigned_to', 'history', 'updated_at'])
    except DatabaseError as e:
        lead.refresh_from_db()
        logger.exception("Erro ao transferir lead %s", lead.pk)
        raise DataAccessError("Erro ao transferir lead.") from e

    logger.info("Lead %s transferido para %s por %s", lead.pk, target_user.email, actor.email)
    return lead


def _optional_decimal(value, field_name):
    if value in (None, ''):
        return None
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip().replace("R$", "").replace(" ", "").replace(",", "."))
    except InvalidOperation:
        raise ValidationError(f"Valor inválido em '{field_name}'.", field=field_name)


def request_digitacao(lead, actor, banco, valor=None, parcela=None, notes=None):
    """
    Solicita a digitação da proposta: cria a proposta já na etapa de
    digitação e fecha o lead, tudo na mesma transação.
    """
    _check_permission(lead, actor)
    banco = (banco or '').strip() if isinstance(banco, str) else ''
    if not banco:
        raise ValidationError("Selecione o banco.", field='banco')
    valor = _optional_decimal(valor, 'valor')
    parcela = _optional_decimal(parcela, 'parcela')

    from_status = lead.status
    entry = HistoryEntry.by(
        actor, 'digitacao_requested',
        from_status=from_status,
        to_status=LeadStatus.CLIENTE_FECHADO.value,
        note=f"Digitação solicitada no banco {banco}",
        payload={
            'digitacao': {
                'banco': banco,
                'valor': str(valor) if valor is not None else None,
                'parcela': str(parcela) if parcela is not None else None,
            }
        },
    )

    try:
        with transaction.atomic():
            try:
                proposal = Proposal.objects.create(
                    lead=lead,
                    client_name=lead.name,
                    cpf=lead.cpf,
                    phone=lead.phone,
                    convenio=lead.convenio,
                    banco=banco,
                    valor_operacao=valor,
                    parcela=parcela,
                    pipeline_stage="digitacao",
                    client_status="aguardando_digitacao",
                    origem_lead="leads_premium",
                    created_by=actor,
                    assigned_to=actor,
                    company_id=actor.company_id,
                    notes=notes or "Digitação solicitada de Leads Premium",
                )
            except DatabaseError as e:
                raise DownstreamCreationError("Erro ao solicitar digitação.") from e

            _append_history(lead, entry)
            lead.status = LeadStatus.CLIENTE_FECHADO
            lead.save(update_fields=['status', 'history', 'updated_at'])
    except CRMError:
        lead.refresh_from_db()
        raise
    except DatabaseError as e:
        lead.refresh_from_db()
        logger.exception("Erro ao solicitar digitação do lead %s", lead.pk)
        raise DataAccessError("Erro ao atualizar lead.") from e

    logger.info("Lead %s: digitação solicitada no banco %s por %s", lead.pk, banco, actor.email)
    return proposal


def expire_future_contacts(today=None):
    return data_access.expire_overdue_future_contacts(today)
