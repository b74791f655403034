"""
Operações de acesso a dados usadas pelas regras de negócio.

Tudo aqui roda sobre o ORM do Django. Falhas do banco são convertidas em
DataAccessError para que as views tratem um único tipo de erro.
"""
import logging
from functools import wraps

from django.db import DatabaseError, transaction
from django.db.models import Count
from django.utils import timezone

from .exceptions import DataAccessError
from .history import HistoryEntry
from .models import BlacklistEntry, Lead, LeadStatus, PoolLead, UserCredit

logger = logging.getLogger(__name__)


def db_operation(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DatabaseError as e:
            logger.exception("Falha de banco em %s", func.__name__)
            raise DataAccessError(f"Erro ao acessar o banco de dados ({func.__name__}).") from e
    return wrapper


def _pool_queryset(convenio=None, ddds=None, tags=None):
    qs = PoolLead.objects.filter(is_available=True)
    if convenio:
        qs = qs.filter(convenio__iexact=convenio)
    if ddds:
        qs = qs.filter(ddd__in=list(ddds))
    if tags:
        qs = qs.filter(tag__in=list(tags))
    return qs


@db_operation
def available_pool_counts(convenio=None):
    """Quantidade de leads disponíveis agrupada por convênio, DDD e tag."""
    qs = _pool_queryset(convenio=convenio)

    def grouped(field):
        rows = (
            qs.exclude(**{f"{field}__isnull": True}).exclude(**{field: ''})
            .values(field)
            .annotate(total=Count('id'))
            .order_by(field)
        )
        return {row[field]: row['total'] for row in rows}

    return {
        'total': qs.count(),
        'by_convenio': grouped('convenio'),
        'by_ddd': grouped('ddd'),
        'by_tag': grouped('tag'),
    }


@db_operation
def draw_pool_leads(user, count, convenio=None, ddds=None, tags=None):
    """
    Reserva até 'count' leads do pool (ordem de importação) para o usuário.
    Deve ser chamada dentro de uma transação.
    """
    rows = list(
        _pool_queryset(convenio, ddds, tags)
        .select_for_update()
        .order_by('imported_at', 'id')[:count]
    )
    if not rows:
        return []

    now = timezone.now()
    PoolLead.objects.filter(id__in=[r.id for r in rows]).update(
        is_available=False, drawn_by=user, drawn_at=now
    )
    return rows


@db_operation
def get_user_credits(user):
    credit = UserCredit.objects.filter(user=user).first()
    return credit.balance if credit else 0


@db_operation
def add_to_blacklist(cpf, reason, user=None):
    return BlacklistEntry.objects.create(cpf=cpf or '', reason=reason, created_by=user)


@db_operation
def expire_overdue_future_contacts(today=None):
    """
    Devolve para 'new_lead' os leads em 'contato_futuro' cuja data já passou.
    Cada lead recebe uma entrada de histórico do sistema.
    """
    today = today or timezone.localdate()
    expired = 0
    with transaction.atomic():
        overdue = (
            Lead.objects.select_for_update()
            .filter(status=LeadStatus.CONTATO_FUTURO, future_contact_date__lt=today)
        )
        for lead in overdue:
            entry = HistoryEntry(
                action='status_change',
                user_id=None,
                user_name='Sistema',
                from_status=lead.status,
                to_status=LeadStatus.NEW_LEAD.value,
                note=f"Contato futuro vencido em {lead.future_contact_date:%d/%m/%Y}",
            )
            lead.history = list(lead.history or []) + [entry.as_dict()]
            lead.status = LeadStatus.NEW_LEAD
            lead.save(update_fields=['status', 'history', 'updated_at'])
            expired += 1
    if expired:
        logger.info("%s leads com contato futuro vencido voltaram para novo lead", expired)
    return expired


@db_operation
def bulk_insert_pool(rows):
    """
    Insere linhas já validadas no pool.
    Retorna {'imported', 'duplicates', 'invalid'}; duplicado = CPF ou telefone
    já existente no pool ou repetido no próprio arquivo.
    """
    cpfs = {r['cpf'] for r in rows if r.get('cpf')}
    phones = {r['phone'] for r in rows if r.get('phone')}
    existing_cpfs = set(PoolLead.objects.filter(cpf__in=cpfs).values_list('cpf', flat=True))
    existing_phones = set(PoolLead.objects.filter(phone__in=phones).values_list('phone', flat=True))

    to_create = []
    duplicates = 0
    invalid = 0
    for row in rows:
        if not row.get('name') or not row.get('phone') or not row.get('convenio'):
            invalid += 1
            continue
        cpf = row.get('cpf') or ''
        if (cpf and cpf in existing_cpfs) or row['phone'] in existing_phones:
            duplicates += 1
            continue
        if cpf:
            existing_cpfs.add(cpf)
        existing_phones.add(row['phone'])
        to_create.append(PoolLead(
            name=row['name'],
            cpf=cpf,
            phone=row['phone'],
            phone2=row.get('phone2') or None,
            convenio=row['convenio'],
            tag=row.get('tag') or None,
            ddd=row['phone'][:2],
            banco=row.get('banco') or '',
        ))

    PoolLead.objects.bulk_create(to_create, batch_size=1000)
    return {'imported': len(to_create), 'duplicates': duplicates, 'invalid': invalid}
