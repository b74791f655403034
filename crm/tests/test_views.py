import json
from datetime import date
from decimal import Decimal
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.test import Client, TestCase
from django.urls import reverse

from crm.models import (
    AuditLog, CommissionRule, Lead, LeadStatus, PoolLead, Proposal, Sale, User, UserCredit,
)


class ViewTestCase(TestCase):
    def setUp(self):
        # Adicionamos 'username' pois o UserManager padrão ainda o exige
        self.consultant = User.objects.create_user(
            username='consultor_teste',
            email='consultor@teste.com',
            password='password123',
            role=User.Role.CONSULTANT
        )
        self.manager = User.objects.create_user(
            username='gestor_teste',
            email='gestor@teste.com',
            password='password123',
            role=User.Role.MANAGER
        )
        self.admin = User.objects.create_user(
            username='admin_teste',
            email='admin@teste.com',
            password='password123',
            role=User.Role.ADMIN
        )
        self.client = Client()

    def post_json(self, url, data):
        return self.client.post(url, data=json.dumps(data), content_type='application/json')


class UserRoleTests(ViewTestCase):
    def test_dashboard_access_login_required(self):
        """Testa se o dashboard exige login"""
        response = self.client.get(reverse('api_dashboard'))
        # Deve redirecionar (302) para o login, não deixar entrar (200)
        self.assertEqual(response.status_code, 302)

    def test_consultant_denied_bulk_delete(self):
        """Testa se CONSULTOR é BLOQUEADO nas operações em massa"""
        self.client.force_login(self.consultant)
        response = self.post_json(reverse('api_bulk_delete'), {'ids': [1]})
        self.assertEqual(response.status_code, 403)

    def test_absenteeism_for_managers_only(self):
        self.client.force_login(self.consultant)
        self.assertEqual(self.client.get(reverse('api_absenteeism')).status_code, 403)

        self.client.force_login(self.manager)
        response = self.client.get(reverse('api_absenteeism'))
        self.assertEqual(response.status_code, 200)
        self.assertIn('rate', response.json())

    def test_consultant_denied_commission_rules(self):
        self.client.force_login(self.consultant)
        self.assertEqual(self.client.get(reverse('commission_list')).status_code, 403)


class LeadViewTests(ViewTestCase):
    def setUp(self):
        super().setUp()
        self.lead = Lead.objects.create(
            name='Maria', cpf='12345678901', phone='11999998888', convenio='INSS',
            assigned_to=self.consultant, created_by=self.consultant,
        )

    def test_list_only_own_leads(self):
        Lead.objects.create(name='Outro', phone='11999997777', convenio='INSS', assigned_to=self.admin)
        self.client.force_login(self.consultant)

        data = self.client.get(reverse('api_leads')).json()

        self.assertEqual([lead['name'] for lead in data['leads']], ['Maria'])
        self.assertEqual(data['stats']['total'], 1)

    def test_change_status(self):
        self.client.force_login(self.consultant)
        url = reverse('api_lead_status', args=[self.lead.id])

        response = self.post_json(url, {'status': 'em_andamento'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['lead']['status_label'], 'Em Andamento')
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, LeadStatus.EM_ANDAMENTO)

    def test_rejection_without_value_is_bad_request(self):
        self.client.force_login(self.consultant)
        url = reverse('api_lead_status', args=[self.lead.id])

        response = self.post_json(url, {
            'status': 'recusou_oferta', 'reason': 'valor_baixo', 'description': 'Achou pouco', 'bank': 'PAN',
        })

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['field'], 'offered_value')
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, LeadStatus.NEW_LEAD)

    def test_other_user_is_forbidden(self):
        self.client.force_login(self.manager)
        response = self.post_json(reverse('api_lead_status', args=[self.lead.id]), {'status': 'em_andamento'})
        self.assertEqual(response.status_code, 403)

    def test_closing_failure_is_bad_gateway(self):
        self.client.force_login(self.consultant)
        with mock.patch.object(Proposal.objects, 'create', side_effect=DatabaseError('falhou')):
            response = self.post_json(reverse('api_lead_status', args=[self.lead.id]),
                                      {'status': 'cliente_fechado'})
        self.assertEqual(response.status_code, 502)
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.status, LeadStatus.NEW_LEAD)

    def test_impossible_date_is_bad_request(self):
        self.client.force_login(self.consultant)
        response = self.post_json(reverse('api_lead_status', args=[self.lead.id]), {
            'status': 'contato_futuro', 'future_contact_date': '2030-02-30',
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['field'], 'future_contact_date')

    def test_request_digitacao(self):
        self.client.force_login(self.consultant)
        url = reverse('api_lead_digitacao', args=[self.lead.id])

        response = self.post_json(url, {'banco': 'BMG', 'valor': '5000', 'parcela': '150'})

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['lead']['status'], 'cliente_fechado')
        proposal = Proposal.objects.get(pk=response.json()['proposal_id'])
        self.assertEqual(proposal.pipeline_stage, 'digitacao')

    def test_request_digitacao_requires_bank(self):
        self.client.force_login(self.consultant)
        response = self.post_json(reverse('api_lead_digitacao', args=[self.lead.id]), {'valor': '5000'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['field'], 'banco')

    def test_assign(self):
        self.client.force_login(self.admin)
        response = self.post_json(reverse('api_lead_assign', args=[self.lead.id]),
                                  {'assigned_to': self.manager.id})
        self.assertEqual(response.status_code, 200)
        self.lead.refresh_from_db()
        self.assertEqual(self.lead.assigned_to, self.manager)

    def test_bulk_reassign(self):
        self.client.force_login(self.admin)
        response = self.post_json(reverse('api_bulk_reassign'),
                                  {'ids': [self.lead.id], 'assigned_to': self.manager.id})
        self.assertEqual(response.json(), {'moved': 1})


class RequestLeadsViewTests(ViewTestCase):
    def test_insufficient_credits_is_conflict(self):
        UserCredit.objects.filter(user=self.consultant).update(balance=3)
        self.client.force_login(self.consultant)

        response = self.post_json(reverse('api_request_leads'), {'count': 5})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['balance'], 3)
        self.assertEqual(Lead.objects.count(), 0)

    def test_request_with_filters(self):
        UserCredit.objects.filter(user=self.consultant).update(balance=10)
        PoolLead.objects.create(name='A', phone='21999990000', convenio='INSS')
        PoolLead.objects.create(name='B', phone='11999990000', convenio='INSS')
        self.client.force_login(self.consultant)

        response = self.post_json(reverse('api_request_leads'), {'count': 5, 'ddds': ['21']})

        data = response.json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(data['delivered'], 1)
        self.assertEqual(data['balance'], 9)

    def test_pool_counts(self):
        PoolLead.objects.create(name='A', phone='21999990000', convenio='INSS')
        self.client.force_login(self.consultant)

        data = self.client.get(reverse('api_pool')).json()

        self.assertEqual(data['pool']['total'], 1)
        self.assertEqual(data['pool']['by_ddd'], {'21': 1})
        self.assertEqual(data['balance'], 0)

    def test_admin_grants_credits(self):
        self.client.force_login(self.admin)
        response = self.post_json(reverse('api_grant_credits', args=[self.consultant.id]), {'amount': 7})
        self.assertEqual(response.json()['balance'], 7)


class DashboardViewTests(ViewTestCase):
    def test_revenue_against_previous_period(self):
        Sale.objects.create(consultant=self.consultant, banco='C6', tipo_operacao='Novo',
                            parcela=Decimal('300'), status='pago', data_venda=date(2024, 3, 10))
        Sale.objects.create(consultant=self.consultant, banco='C6', tipo_operacao='Novo',
                            parcela=Decimal('200'), status='pago', data_venda=date(2024, 2, 10))
        Sale.objects.create(consultant=self.admin, banco='C6', tipo_operacao='Novo',
                            parcela=Decimal('999'), status='pago', data_venda=date(2024, 3, 10))
        self.client.force_login(self.consultant)

        data = self.client.get(reverse('api_dashboard'),
                               {'start_date': '2024-03-01', 'end_date': '2024-03-31'}).json()

        self.assertEqual(data['revenue']['current'], '300.00')
        self.assertEqual(data['revenue']['previous'], '200.00')
        self.assertEqual(data['revenue']['delta'], 50.0)
        self.assertEqual(data['kpis']['kpi_total_sales'], 1)

    def test_ranking(self):
        for _ in range(2):
            Sale.objects.create(consultant=self.manager, banco='C6', parcela=Decimal('10'),
                                status='pago', data_venda=date(2024, 3, 10))
        Sale.objects.create(consultant=self.consultant, banco='C6', parcela=Decimal('10'),
                            status='pago', data_venda=date(2024, 3, 11))
        self.client.force_login(self.admin)

        data = self.client.get(reverse('api_ranking'),
                               {'start_date': '2024-03-01', 'end_date': '2024-03-31'}).json()

        self.assertEqual([row['id'] for row in data['ranking']], [self.manager.id, self.consultant.id])


class CommissionRuleViewTests(ViewTestCase):
    def setUp(self):
        super().setUp()
        self.client.force_login(self.admin)

    def test_create_rule(self):
        response = self.post_json(reverse('commission_list'), {
            'bank_name': ' banco pan ',
            'product_name': 'Portabilidade',
            'calculation_model': 'ambos',
            'commission_type': 'percentage',
            'commission_value': '2.5',
        })

        self.assertEqual(response.status_code, 201)
        rule = CommissionRule.objects.get()
        self.assertEqual(rule.bank_name, 'BANCO PAN')
        self.assertTrue(rule.is_active)
        self.assertTrue(AuditLog.objects.filter(action='create_commission_rule').exists())

    def test_invalid_rule(self):
        response = self.post_json(reverse('commission_list'), {
            'bank_name': 'PAN', 'product_name': 'Novo', 'calculation_model': 'xpto',
            'commission_type': 'percentage', 'commission_value': '-1',
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn('calculation_model', response.json()['fields'])

    def test_update_and_delete_rule(self):
        rule = CommissionRule.objects.create(bank_name='PAN', product_name='Novo',
                                             commission_value=Decimal('1'))

        response = self.post_json(reverse('commission_update', args=[rule.id]), {'commission_value': '3'})
        self.assertEqual(response.status_code, 200)
        rule.refresh_from_db()
        self.assertEqual(rule.commission_value, Decimal('3'))
        self.assertEqual(rule.product_name, 'Novo')

        response = self.client.post(reverse('commission_delete', args=[rule.id]))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(CommissionRule.objects.exists())
        self.assertTrue(AuditLog.objects.filter(action='update_commission_rule').exists())
        self.assertTrue(AuditLog.objects.filter(action='delete_commission_rule').exists())


class CargaLeadsViewTests(ViewTestCase):
    @mock.patch('crm.views.subprocess.Popen')
    @mock.patch('crm.views.default_storage')
    def test_upload_starts_import(self, storage, popen):
        storage.save.return_value = 'tmp/leads.csv'
        self.client.force_login(self.admin)
        csv_file = SimpleUploadedFile('leads.csv', b'Nome,Convenio,Telefone 1\nAna,INSS,11999990000\n')

        response = self.client.post(reverse('carga_leads'), {'csv_file': csv_file})

        self.assertEqual(response.status_code, 202)
        command = popen.call_args[0][0]
        self.assertIn('import_leads', command)
        self.assertIn(f'--user-id={self.admin.id}', command)
        self.assertTrue(AuditLog.objects.filter(action='inicio_carga_csv').exists())

    def test_upload_requires_file(self):
        self.client.force_login(self.admin)
        response = self.client.post(reverse('carga_leads'), {})
        self.assertEqual(response.status_code, 400)
