from collections import Counter
from datetime import timedelta
from decimal import Decimal

from django.db.models import Count, Q, Sum
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .commission import compute_sale_value, row_value
from .models import LeadStatus


def calcular_kpis_gerais(queryset):
    """
    Calcula os KPIs principais para um queryset de Vendas (televendas).
    Retorna um dicionário com os valores prontos.
    """
    kpis = queryset.aggregate(
        total_sales=Count('id'),
        paid_sales=Count('id', filter=Q(status='pago')),
        cancelled_sales=Count('id', filter=Q(status='cancelado')),
        total_parcela=Sum('parcela'),
    )

    total = kpis['total_sales'] or 0
    paid = kpis['paid_sales'] or 0

    # Evita divisão por zero
    if total > 0:
        paid_rate = Decimal(paid) / Decimal(total) * 100
    else:
        paid_rate = Decimal('0.0')

    return {
        'kpi_total_sales': total,
        'kpi_paid_sales': paid,
        'kpi_cancelled_sales': kpis['cancelled_sales'] or 0,
        'kpi_paid_rate': paid_rate,
        'kpi_total_parcela': kpis['total_parcela'] or Decimal('0.0'),
    }


def count_by_status(leads):
    return dict(Counter(row_value(lead, 'status') for lead in leads))


def _as_datetime(value):
    if isinstance(value, str):
        value = parse_datetime(value)
    if value is not None and timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


def lead_stats(leads, now=None):
    """Cartões de resumo da carteira de leads."""
    leads = list(leads)
    now = now or timezone.now()
    today = timezone.localtime(now).replace(hour=0, minute=0, second=0, microsecond=0)
    week_start = today - timedelta(days=(today.weekday() + 1) % 7)  # semana começa no domingo

    counts = count_by_status(leads)
    total = len(leads)
    closed = counts.get(LeadStatus.CLIENTE_FECHADO, 0)

    hours = []
    for lead in leads:
        if row_value(lead, 'status') != LeadStatus.CLIENTE_FECHADO:
            continue
        created = _as_datetime(row_value(lead, 'created_at'))
        updated = _as_datetime(row_value(lead, 'updated_at'))
        if created and updated:
            hours.append((updated - created).total_seconds() / 3600)

    created_dates = [_as_datetime(row_value(lead, 'created_at')) for lead in leads]

    return {
        'total': total,
        'novos': counts.get(LeadStatus.NEW_LEAD, 0),
        'em_andamento': counts.get(LeadStatus.EM_ANDAMENTO, 0) + counts.get(LeadStatus.AGUARDANDO_RETORNO, 0),
        'fechados': closed,
        'recusados': counts.get(LeadStatus.RECUSOU_OFERTA, 0) + counts.get(LeadStatus.SEM_INTERESSE, 0),
        'pendentes': counts.get(LeadStatus.AGENDAMENTO, 0) + counts.get(LeadStatus.CONTATO_FUTURO, 0),
        'conversion_rate': (closed / total * 100) if total else 0.0,
        'avg_hours_to_conversion': (sum(hours) / len(hours)) if hours else 0.0,
        'today_count': sum(1 for d in created_dates if d and d >= today),
        'week_count': sum(1 for d in created_dates if d and d >= week_start),
        'by_status': counts,
    }


def absenteeism(profiles, clock_entries, expected_work_days):
    """
    Faltas por usuário ativo: dias esperados menos dias distintos com batida.
    A taxa geral é total de faltas / (usuários ativos x dias esperados).
    """
    active = [p for p in profiles if row_value(p, 'is_active') is not False]

    days_by_user = {}
    for entry in clock_entries:
        user_id = row_value(entry, 'user_id')
        days_by_user.setdefault(user_id, set()).add(row_value(entry, 'clock_date'))

    per_user = []
    total_missed = 0
    for profile in active:
        worked = len(days_by_user.get(row_value(profile, 'id'), ()))
        missed = max(0, expected_work_days - worked)
        total_missed += missed
        per_user.append({'id': row_value(profile, 'id'), 'name': _display_name(profile), 'missed_days': missed})

    denominator = len(active) * expected_work_days
    rate = (total_missed / denominator) if denominator > 0 else 0.0
    return {'per_user': per_user, 'rate': rate}


def _display_name(profile):
    name = row_value(profile, 'display_name') or row_value(profile, 'name')
    if name:
        return name
    email = row_value(profile, 'email') or ''
    return email.split('@')[0] or 'Usuário'


def rank_salespeople(sales, profiles, rules=None):
    """
    Ranking por quantidade de vendas pagas no período (desempate pela ordem
    dos perfis). Consultores sem venda paga ficam fora do ranking.
    """
    rules = rules or []
    ranking = {}
    for profile in profiles:
        ranking[row_value(profile, 'id')] = {
            'id': row_value(profile, 'id'),
            'name': _display_name(profile),
            'sales_count': 0,
            'total_value': Decimal('0.0'),
        }

    for sale in sales:
        if row_value(sale, 'status') != 'pago':
            continue
        row = ranking.get(row_value(sale, 'consultant_id'))
        if row is None:
            continue
        row['sales_count'] += 1
        row['total_value'] += compute_sale_value(sale, rules)

    ranked = [row for row in ranking.values() if row['sales_count'] > 0]
    # sorted() é estável: empates mantêm a ordem de entrada
    return sorted(ranked, key=lambda row: row['sales_count'], reverse=True)


def revenue_delta(current, previous):
    if not previous:
        return 0.0
    return float((Decimal(current) - Decimal(previous)) / Decimal(previous) * 100)


def sales_revenue(sales, rules, company_id=None):
    return sum((compute_sale_value(sale, rules, company_id) for sale in sales), Decimal('0.0'))


def commission_summary(commissions):
    preview = Decimal('0.0')
    paid = Decimal('0.0')
    for commission in commissions:
        amount = row_value(commission, 'commission_amount') or Decimal('0.0')
        if row_value(commission, 'status') == 'paid':
            paid += amount
        else:
            preview += amount
    return {'preview': preview, 'paid': paid, 'total': preview + paid}


def previous_period(start_date, end_date):
    """Janela de mesmo tamanho imediatamente anterior a [start_date, end_date]."""
    length = (end_date - start_date).days + 1
    prev_end = start_date - timedelta(days=1)
    return prev_end - timedelta(days=length - 1), prev_end
