import json
import logging
import os
import subprocess
import sys
import uuid
from datetime import datetime
from decimal import Decimal

from django.conf import settings
from django.contrib.auth.decorators import login_required
from django.core.files.storage import default_storage
from django.core.serializers.json import DjangoJSONEncoder
from django.db.models import Q
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views.decorators.http import require_GET, require_POST

from . import bulk, data_access, lead_requests, lead_status
from .decorators import role_required
from .exceptions import CRMError, DataAccessError, ValidationError
from .forms import AssignLeadForm, LeadRequestForm, LeadUploadForm
from .models import AuditLog, ClockEntry, Commission, CommissionRule, Lead, Sale, User
from .notifications import notify
from .services import (
    absenteeism, calcular_kpis_gerais, commission_summary, count_by_status,
    lead_stats, previous_period, rank_salespeople, revenue_delta, sales_revenue,
)

logger = logging.getLogger(__name__)


class DecimalEncoder(DjangoJSONEncoder):
    def default(self, o):
        if isinstance(o, Decimal):
            return "{:.2f}".format(o)
        return super().default(o)


def json_response(data, status=200):
    return JsonResponse(data, status=status, encoder=DecimalEncoder)


def _error_response(request, error, title):
    """Converte um CRMError na resposta JSON e avisa o usuário."""
    # Falhas de banco não expõem detalhes ao usuário
    message = error.default_message if isinstance(error, DataAccessError) else error.message
    notify(request, title, message, kind="error")
    return json_response({'error': message, **error.details}, status=error.status_code)


def read_json_body(request):
    if not request.body:
        return {}
    try:
        body = json.loads(request.body)
    except ValueError:
        raise ValidationError("Corpo da requisição inválido.")
    if not isinstance(body, dict):
        raise ValidationError("Corpo da requisição inválido.")
    return body


def _period(request):
    """Lê start_date / end_date (YYYY-MM-DD); padrão é o mês corrente."""
    today = timezone.localdate()
    start_date_str = request.GET.get('start_date', today.replace(day=1).isoformat())
    end_date_str = request.GET.get('end_date', today.isoformat())
    try:
        start_date = datetime.strptime(start_date_str, '%Y-%m-%d').date()
        end_date = datetime.strptime(end_date_str, '%Y-%m-%d').date()
    except ValueError:
        start_date = today.replace(day=1)
        end_date = today
    return start_date, end_date


def _is_admin(user):
    return user.is_admin or user.is_superuser


def _visible_leads(user):
    qs = Lead.objects.select_related('assigned_to')
    if _is_admin(user):
        return qs
    if user.role == User.Role.MANAGER:
        return qs.filter(Q(assigned_to=user) | Q(assigned_to__manager=user))
    return qs.filter(assigned_to=user)


def _visible_sales(user):
    qs = Sale.objects.all()
    if _is_admin(user):
        return qs
    if user.role == User.Role.MANAGER:
        return qs.filter(Q(consultant=user) | Q(consultant__manager=user))
    return qs.filter(consultant=user)


def _visible_commissions(user):
    qs = Commission.objects.all()
    if _is_admin(user):
        return qs
    if user.role == User.Role.MANAGER:
        return qs.filter(Q(user=user) | Q(user__manager=user))
    return qs.filter(user=user)


def _active_rules():
    return list(CommissionRule.objects.filter(is_active=True))


def lead_to_dict(lead):
    return {
        'id': lead.id,
        'name': lead.name,
        'cpf': lead.cpf,
        'phone': lead.phone,
        'phone2': lead.phone2,
        'convenio': lead.convenio,
        'tag': lead.tag,
        'status': lead.status,
        'status_label': lead.status_label,
        'assigned_to': lead.assigned_to_id,
        'assigned_to_name': lead.assigned_to.display_name if lead.assigned_to else None,
        'origem_lead': lead.origem_lead,
        'future_contact_date': lead.future_contact_date,
        'future_contact_time': lead.future_contact_time,
        'history': lead.history,
        'created_at': lead.created_at,
        'updated_at': lead.updated_at,
    }


# ---
# View 1: Leads
# ---
@login_required
@require_GET
def api_leads(request):
    """Leads visíveis ao usuário e os cartões de resumo."""
    leads = _visible_leads(request.user)
    status = request.GET.get('status')
    if status:
        leads = leads.filter(status=status)
    convenio = request.GET.get('convenio')
    if convenio:
        leads = leads.filter(convenio__iexact=convenio)

    leads = list(leads)
    return json_response({
        'leads': [lead_to_dict(lead) for lead in leads],
        'stats': lead_stats(leads),
    })


@login_required
@require_POST
def api_lead_status(request, lead_id):
    lead = get_object_or_404(Lead, pk=lead_id)
    try:
        body = read_json_body(request)
        new_status = body.pop('status', None)
        if not new_status:
            raise ValidationError("Informe o novo status.", field='status')
        lead_status.change_status(lead, new_status, request.user, extra=body)
    except CRMError as e:
        return _error_response(request, e, "Erro ao atualizar status")

    notify(request, "Status atualizado", f"Lead marcado como {lead.status_label}.")
    return json_response({'lead': lead_to_dict(lead)})


@login_required
@require_POST
def api_lead_digitacao(request, lead_id):
    lead = get_object_or_404(Lead, pk=lead_id)
    try:
        body = read_json_body(request)
        proposal = lead_status.request_digitacao(
            lead, request.user,
            banco=body.get('banco'),
            valor=body.get('valor'),
            parcela=body.get('parcela'),
            notes=body.get('notes'),
        )
    except CRMError as e:
        return _error_response(request, e, "Erro ao solicitar digitação")

    notify(request, "Digitação solicitada!", "Lead convertido para proposta em digitação.")
    return json_response({'lead': lead_to_dict(lead), 'proposal_id': proposal.id}, status=201)


@login_required
@require_POST
def api_lead_assign(request, lead_id):
    lead = get_object_or_404(Lead, pk=lead_id)
    try:
        form = AssignLeadForm(read_json_body(request))
        if not form.is_valid():
            raise ValidationError("Selecione um usuário válido.", field='assigned_to')
        target = form.cleaned_data['assigned_to']
        lead_status.assign_lead(lead, target, request.user)
    except CRMError as e:
        return _error_response(request, e, "Erro ao transferir lead")

    notify(request, "Lead transferido", f"Lead transferido para {target.display_name}.")
    return json_response({'lead': lead_to_dict(lead)})


# ---
# View 2: Solicitação de leads (créditos)
# ---
@login_required
@require_POST
def api_request_leads(request):
    try:
        body = read_json_body(request)
        # O formulário recebe DDDs e tags como texto separado por vírgula
        for field in ('ddds', 'tags'):
            if isinstance(body.get(field), list):
                body[field] = ','.join(str(v) for v in body[field])
        form = LeadRequestForm(body)
        if not form.is_valid():
            raise ValidationError("Informe uma quantidade válida.", field='count')

        created = lead_requests.request_leads(
            request.user,
            form.cleaned_data['count'],
            convenio=form.cleaned_data['convenio'] or None,
            ddds=form.cleaned_data['ddds'] or None,
            tags=form.cleaned_data['tags'] or None,
        )
        balance = data_access.get_user_credits(request.user)
    except CRMError as e:
        return _error_response(request, e, "Erro ao solicitar leads")

    if created:
        notify(request, "Leads recebidos", f"{len(created)} leads adicionados à sua carteira.")
    else:
        notify(request, "Nenhum lead disponível", "Não há leads no pool para os filtros escolhidos.")

    return json_response({
        'requested': form.cleaned_data['count'],
        'delivered': len(created),
        'balance': balance,
        'leads': [lead_to_dict(lead) for lead in created],
    })


@login_required
@require_GET
def api_pool(request):
    try:
        counts = data_access.available_pool_counts(convenio=request.GET.get('convenio') or None)
        balance = data_access.get_user_credits(request.user)
    except CRMError as e:
        return _error_response(request, e, "Erro ao consultar o pool")
    return json_response({'pool': counts, 'balance': balance})


@login_required
@role_required(allowed_roles=[User.Role.ADMIN])
@require_POST
def api_grant_credits(request, user_id):
    target = get_object_or_404(User, pk=user_id)
    try:
        body = read_json_body(request)
        balance = lead_requests.grant_credits(target, body.get('amount'), request.user)
    except CRMError as e:
        return _error_response(request, e, "Erro ao atualizar créditos")

    notify(request, "Créditos atualizados", f"{target.display_name} agora tem {balance} créditos.")
    return json_response({'user': target.id, 'balance': balance})


# ---
# View 3: Operações em massa (Admin)
# ---
def _lead_ids(body):
    ids = body.get('ids')
    if not isinstance(ids, list) or not ids:
        raise ValidationError("Selecione ao menos um lead.", field='ids')
    try:
        return [int(i) for i in ids]
    except (TypeError, ValueError):
        raise ValidationError("Lista de leads inválida.", field='ids')


@login_required
@role_required(allowed_roles=[User.Role.ADMIN])
@require_POST
def api_bulk_delete(request):
    try:
        ids = _lead_ids(read_json_body(request))
        deleted = bulk.bulk_delete_leads(ids, request.user)
    except CRMError as e:
        return _error_response(request, e, "Erro na exclusão em massa")

    notify(request, "Leads excluídos", f"{deleted} leads excluídos.")
    return json_response({'deleted': deleted})


@login_required
@role_required(allowed_roles=[User.Role.ADMIN])
@require_POST
def api_bulk_reassign(request):
    try:
        body = read_json_body(request)
        ids = _lead_ids(body)
        form = AssignLeadForm(body)
        if not form.is_valid():
            raise ValidationError("Selecione um usuário válido.", field='assigned_to')
        moved = bulk.bulk_reassign_leads(ids, form.cleaned_data['assigned_to'], request.user)
    except CRMError as e:
        return _error_response(request, e, "Erro na transferência em massa")

    notify(request, "Leads transferidos", f"{moved} leads transferidos.")
    return json_response({'moved': moved})


# ---
# View 4: API de Dados do Dashboard
# ---
@login_required
@require_GET
def api_dashboard(request):
    """
    Fornece os dados do Dashboard via JSON: faturamento do período contra o
    período anterior, status dos leads e comissões. Admin vê tudo, gerente vê
    a equipe e consultor vê apenas os próprios dados.
    """
    user = request.user
    start_date, end_date = _period(request)
    prev_start, prev_end = previous_period(start_date, end_date)
    rules = _active_rules()

    sales = _visible_sales(user)
    sales_periodo = sales.filter(data_venda__gte=start_date, data_venda__lte=end_date)
    sales_anterior = sales.filter(data_venda__gte=prev_start, data_venda__lte=prev_end)

    current = sales_revenue(sales_periodo.filter(status='pago'), rules)
    previous = sales_revenue(sales_anterior.filter(status='pago'), rules)

    commissions = _visible_commissions(user).filter(
        proposal_date__gte=start_date, proposal_date__lte=end_date
    )

    data = {
        'revenue': {
            'current': current,
            'previous': previous,
            'delta': revenue_delta(current, previous),
        },
        'kpis': calcular_kpis_gerais(sales_periodo),
        'leads_by_status': count_by_status(_visible_leads(user).values('status')),
        'commissions': commission_summary(commissions.values('commission_amount', 'status')),
        'filters_display': {
            'start_date_display': start_date.strftime('%d/%m/%Y'),
            'end_date_display': end_date.strftime('%d/%m/%Y'),
            'previous_start_display': prev_start.strftime('%d/%m/%Y'),
            'previous_end_display': prev_end.strftime('%d/%m/%Y'),
        },
    }
    return json_response(data)


@login_required
@require_GET
def api_ranking(request):
    start_date, end_date = _period(request)
    sales = Sale.objects.filter(data_venda__gte=start_date, data_venda__lte=end_date, status='pago')
    profiles = User.objects.filter(is_active=True).order_by('id')
    if not _is_admin(request.user) and request.user.company_id:
        sales = sales.filter(company_id=request.user.company_id)
        profiles = profiles.filter(company_id=request.user.company_id)

    ranking = rank_salespeople(sales, profiles, _active_rules())
    return json_response({'ranking': ranking})


@login_required
@role_required(allowed_roles=[User.Role.ADMIN, User.Role.MANAGER])
@require_GET
def api_absenteeism(request):
    start_date, end_date = _period(request)
    profiles = User.objects.filter(is_active=True).order_by('id')
    if not _is_admin(request.user):
        profiles = profiles.filter(Q(pk=request.user.pk) | Q(manager=request.user))

    entries = ClockEntry.objects.filter(
        user__in=profiles, clock_date__gte=start_date, clock_date__lte=end_date
    ).values('user_id', 'clock_date')

    report = absenteeism(profiles, entries, settings.EXPECTED_WORK_DAYS)
    report['expected_work_days'] = settings.EXPECTED_WORK_DAYS
    return json_response(report)


# ---
# View 5: Carga de Leads (CSV)
# ---
@login_required
@role_required(allowed_roles=[User.Role.ADMIN])
def carga_leads(request):

    if request.method == 'POST':
        form = LeadUploadForm(request.POST, request.FILES)
        if not form.is_valid():
            notify(request, "Erro", "Ficheiro não fornecido.", kind="error")
            return json_response({'error': 'Ficheiro não fornecido.'}, status=400)

        csv_file = form.cleaned_data['csv_file']
        temp_name = f"leads_{uuid.uuid4()}.csv"
        temp_path = default_storage.save(f"tmp/{temp_name}", csv_file)
        full_temp_path = os.path.join(settings.MEDIA_ROOT, temp_path)

        python_exec = sys.executable
        manage_py = os.path.join(settings.BASE_DIR, 'manage.py')
        command = [python_exec, manage_py, 'import_leads', full_temp_path, f"--user-id={request.user.id}"]
        subprocess.Popen(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        logger.info("Importação de leads iniciada por %s: %s", request.user.email, full_temp_path)

        AuditLog.objects.create(
            user=request.user,
            action="inicio_carga_csv",
            details={"file_type": "leads", "filename": csv_file.name}
        )
        notify(request, "Sucesso", "A importação dos leads foi iniciada. Os dados estarão disponíveis em alguns minutos.")
        return json_response({'started': True, 'filename': csv_file.name}, status=202)

    logs = AuditLog.objects.filter(
        action__in=["inicio_carga_csv", "fim_carga_csv", "falha_carga_csv"]
    ).order_by('-timestamp')[:5]

    return json_response({
        'logs': [
            {'timestamp': log.timestamp, 'action': log.action, 'details': log.details}
            for log in logs
        ],
    })
