from django.test import TestCase

from crm.exceptions import InsufficientCreditsError, LeadPermissionError, ValidationError
from crm.lead_requests import ORIGEM_SOLICITACAO, grant_credits, request_leads
from crm.lead_status import change_status
from crm.models import AuditLog, Lead, LeadStatus, PoolLead, User, UserCredit


class RequestLeadsTests(TestCase):
    def setUp(self):
        self.consultant = User.objects.create_user(
            username='consultor_teste',
            email='consultor@teste.com',
            password='password123',
            role=User.Role.CONSULTANT,
        )

    def set_balance(self, balance):
        UserCredit.objects.filter(user=self.consultant).update(balance=balance)

    def balance(self):
        return UserCredit.objects.get(user=self.consultant).balance

    def add_pool(self, count, convenio='INSS', ddd='11', tag=None, start=0):
        for i in range(start, start + count):
            PoolLead.objects.create(
                name=f'Cliente {i}',
                phone=f'{ddd}9{i:08d}',
                convenio=convenio,
                tag=tag,
            )

    def test_new_user_starts_with_zero_credits(self):
        self.assertEqual(self.balance(), 0)

    def test_not_enough_credits_draws_nothing(self):
        self.set_balance(3)
        self.add_pool(10)

        with self.assertRaises(InsufficientCreditsError) as ctx:
            request_leads(self.consultant, 5)

        self.assertEqual(ctx.exception.balance, 3)
        self.assertEqual(self.balance(), 3)
        self.assertEqual(Lead.objects.count(), 0)
        self.assertEqual(PoolLead.objects.filter(is_available=True).count(), 10)

    def test_zero_credits_is_rejected(self):
        self.add_pool(2)
        with self.assertRaises(InsufficientCreditsError):
            request_leads(self.consultant, 1)

    def test_only_drawn_leads_are_debited(self):
        self.set_balance(10)
        self.add_pool(2)

        created = request_leads(self.consultant, 5)

        self.assertEqual(len(created), 2)
        self.assertEqual(self.balance(), 8)
        self.assertEqual(Lead.objects.filter(assigned_to=self.consultant).count(), 2)
        self.assertFalse(PoolLead.objects.filter(is_available=True).exists())
        self.assertEqual(PoolLead.objects.filter(drawn_by=self.consultant).count(), 2)

    def test_drawn_lead_shape(self):
        self.set_balance(1)
        self.add_pool(1)

        lead = request_leads(self.consultant, 1)[0]
        lead = Lead.objects.get(pk=lead.pk)
        self.assertEqual(lead.status, LeadStatus.NEW_LEAD)
        self.assertEqual(lead.created_by, self.consultant)
        self.assertEqual(lead.origem_lead, ORIGEM_SOLICITACAO)
        self.assertIsNotNone(lead.requested_at)
        self.assertEqual(len(lead.history), 1)
        self.assertEqual(lead.history[0]['action'], 'created')

    def test_history_counts_creation_entry(self):
        self.set_balance(1)
        self.add_pool(1)
        lead = Lead.objects.get(pk=request_leads(self.consultant, 1)[0].pk)

        change_status(lead, LeadStatus.EM_ANDAMENTO, self.consultant)
        change_status(lead, LeadStatus.AGUARDANDO_RETORNO, self.consultant)

        lead.refresh_from_db()
        self.assertEqual(len(lead.history), 3)

    def test_empty_pool_debits_nothing(self):
        self.set_balance(5)

        self.assertEqual(request_leads(self.consultant, 3), [])
        self.assertEqual(self.balance(), 5)

    def test_filters_by_convenio_and_ddd(self):
        self.set_balance(10)
        self.add_pool(3, convenio='INSS', ddd='11')
        self.add_pool(2, convenio='INSS', ddd='21', start=10)
        self.add_pool(2, convenio='SIAPE', ddd='21', start=20)

        created = request_leads(self.consultant, 10, convenio='inss', ddds=['21'])

        self.assertEqual(len(created), 2)
        self.assertTrue(all(lead.phone.startswith('21') for lead in created))
        self.assertTrue(all(lead.convenio == 'INSS' for lead in created))
        self.assertEqual(self.balance(), 8)

    def test_filters_by_tag(self):
        self.set_balance(5)
        self.add_pool(2, tag='quente')
        self.add_pool(2, tag='frio', start=10)

        created = request_leads(self.consultant, 5, tags=['quente'])
        self.assertEqual(len(created), 2)

    def test_oldest_pool_leads_are_drawn_first(self):
        self.set_balance(2)
        self.add_pool(4)

        created = request_leads(self.consultant, 2)
        self.assertEqual([lead.name for lead in created], ['Cliente 0', 'Cliente 1'])

    def test_invalid_count(self):
        self.set_balance(5)
        for count in (0, -1, 'abc', None):
            with self.subTest(count=count):
                with self.assertRaises(ValidationError):
                    request_leads(self.consultant, count)

    def test_balance_never_goes_negative(self):
        self.set_balance(3)
        self.add_pool(10)

        for count, should_pass in ((2, True), (2, False), (1, True), (1, False)):
            if should_pass:
                request_leads(self.consultant, count)
            else:
                with self.assertRaises(InsufficientCreditsError):
                    request_leads(self.consultant, count)
            self.assertGreaterEqual(self.balance(), 0)

        self.assertEqual(self.balance(), 0)
        self.assertEqual(Lead.objects.count(), 3)


class GrantCreditsTests(TestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            username='admin_teste', email='admin@teste.com', password='password123',
            role=User.Role.ADMIN,
        )
        self.consultant = User.objects.create_user(
            username='consultor_teste', email='consultor@teste.com', password='password123',
            role=User.Role.CONSULTANT,
        )

    def test_admin_grants_credits(self):
        self.assertEqual(grant_credits(self.consultant, 5, self.admin), 5)
        self.assertEqual(UserCredit.objects.get(user=self.consultant).balance, 5)

        log = AuditLog.objects.get(action='gerenciar_creditos')
        self.assertEqual(log.user, self.admin)
        self.assertEqual(log.details['new_balance'], 5)

    def test_removal_stops_at_zero(self):
        grant_credits(self.consultant, 2, self.admin)
        self.assertEqual(grant_credits(self.consultant, -10, self.admin), 0)

    def test_consultant_cannot_grant(self):
        with self.assertRaises(LeadPermissionError):
            grant_credits(self.consultant, 5, self.consultant)

    def test_zero_amount_is_rejected(self):
        with self.assertRaises(ValidationError):
            grant_credits(self.consultant, 0, self.admin)
