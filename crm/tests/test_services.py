from datetime import date, datetime
from decimal import Decimal

from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from crm.models import Sale, User
from crm.services import (
    absenteeism, calcular_kpis_gerais, commission_summary, count_by_status,
    lead_stats, previous_period, rank_salespeople, revenue_delta, sales_revenue,
)


class AbsenteeismTests(SimpleTestCase):
    def setUp(self):
        self.profiles = [
            {'id': 1, 'name': 'Ana', 'is_active': True},
            {'id': 2, 'name': 'Bia', 'is_active': True},
            {'id': 3, 'name': 'Caio', 'is_active': False},
        ]

    def test_missed_days_per_user_and_rate(self):
        entries = [
            {'user_id': 1, 'clock_date': date(2024, 5, 2)},
            {'user_id': 1, 'clock_date': date(2024, 5, 2)},  # duas batidas no mesmo dia
            {'user_id': 1, 'clock_date': date(2024, 5, 3)},
            {'user_id': 1, 'clock_date': date(2024, 5, 6)},
            {'user_id': 3, 'clock_date': date(2024, 5, 6)},
        ]

        report = absenteeism(self.profiles, entries, expected_work_days=5)

        self.assertEqual(report['per_user'], [
            {'id': 1, 'name': 'Ana', 'missed_days': 2},
            {'id': 2, 'name': 'Bia', 'missed_days': 5},
        ])
        self.assertAlmostEqual(report['rate'], 0.7)

    def test_zero_expected_days(self):
        report = absenteeism(self.profiles, [], expected_work_days=0)
        self.assertEqual(report['rate'], 0.0)
        self.assertTrue(all(row['missed_days'] == 0 for row in report['per_user']))

    def test_no_active_users(self):
        self.assertEqual(absenteeism([], [], expected_work_days=22), {'per_user': [], 'rate': 0.0})


class RankingTests(SimpleTestCase):
    def test_ranks_by_paid_sales_with_stable_ties(self):
        profiles = [
            {'id': 1, 'name': 'Ana'},
            {'id': 2, 'name': 'Bia'},
            {'id': 3, 'name': 'Caio'},
            {'id': 4, 'name': 'Duda'},
        ]
        sale = {'banco': 'C6', 'tipo_operacao': 'Novo', 'parcela': Decimal('100'), 'status': 'pago'}
        sales = [
            dict(sale, consultant_id=3),
            dict(sale, consultant_id=2),
            dict(sale, consultant_id=1),
            dict(sale, consultant_id=2),
            dict(sale, consultant_id=1),
            dict(sale, consultant_id=1, status='cancelado'),
            dict(sale, consultant_id=99),
        ]

        ranking = rank_salespeople(sales, profiles)

        self.assertEqual([row['name'] for row in ranking], ['Ana', 'Bia', 'Caio'])
        self.assertEqual([row['sales_count'] for row in ranking], [2, 2, 1])
        self.assertEqual(ranking[0]['total_value'], Decimal('200'))

    def test_email_prefix_when_no_name(self):
        profiles = [{'id': 1, 'email': 'joana@empresa.com'}]
        sales = [{'consultant_id': 1, 'status': 'pago', 'parcela': Decimal('10')}]
        self.assertEqual(rank_salespeople(sales, profiles)[0]['name'], 'joana')


class RevenueTests(SimpleTestCase):
    def test_revenue_delta(self):
        self.assertEqual(revenue_delta(Decimal('120'), Decimal('100')), 20.0)
        self.assertEqual(revenue_delta(Decimal('80'), Decimal('100')), -20.0)
        self.assertEqual(revenue_delta(Decimal('80'), Decimal('0')), 0.0)

    def test_sales_revenue_uses_rules(self):
        rules = [{'bank_name': 'PAN', 'product_name': 'Portabilidade', 'calculation_model': 'troco',
                  'company_id': None, 'is_active': True}]
        sales = [
            {'banco': 'PAN', 'tipo_operacao': 'Portabilidade', 'saldo_devedor': Decimal('1000'),
             'troco': Decimal('300')},
            {'banco': 'C6', 'tipo_operacao': 'Novo', 'parcela': Decimal('200')},
        ]
        self.assertEqual(sales_revenue(sales, rules), Decimal('500'))

    def test_previous_period_same_length(self):
        self.assertEqual(
            previous_period(date(2024, 3, 1), date(2024, 3, 31)),
            (date(2024, 1, 30), date(2024, 2, 29)),
        )
        self.assertEqual(
            previous_period(date(2024, 5, 10), date(2024, 5, 10)),
            (date(2024, 5, 9), date(2024, 5, 9)),
        )

    def test_commission_summary(self):
        summary = commission_summary([
            {'commission_amount': Decimal('100'), 'status': 'preview'},
            {'commission_amount': Decimal('50'), 'status': 'paid'},
            {'commission_amount': None, 'status': 'preview'},
        ])
        self.assertEqual(summary, {'preview': Decimal('100'), 'paid': Decimal('50'), 'total': Decimal('150')})


class LeadStatsTests(SimpleTestCase):
    def test_summary_cards(self):
        tz = timezone.get_current_timezone()
        now = datetime(2024, 5, 15, 12, 0, tzinfo=tz)  # quarta-feira
        leads = [
            {'status': 'cliente_fechado',
             'created_at': datetime(2024, 5, 15, 8, 0, tzinfo=tz),
             'updated_at': datetime(2024, 5, 15, 10, 0, tzinfo=tz)},
            {'status': 'new_lead',
             'created_at': datetime(2024, 5, 13, 9, 0, tzinfo=tz),
             'updated_at': datetime(2024, 5, 13, 9, 0, tzinfo=tz)},
            {'status': 'em_andamento',
             'created_at': datetime(2024, 5, 1, 9, 0, tzinfo=tz),
             'updated_at': datetime(2024, 5, 2, 9, 0, tzinfo=tz)},
        ]

        stats = lead_stats(leads, now=now)

        self.assertEqual(stats['total'], 3)
        self.assertEqual(stats['fechados'], 1)
        self.assertEqual(stats['novos'], 1)
        self.assertEqual(stats['em_andamento'], 1)
        self.assertAlmostEqual(stats['conversion_rate'], 100 / 3)
        self.assertAlmostEqual(stats['avg_hours_to_conversion'], 2.0)
        self.assertEqual(stats['today_count'], 1)
        self.assertEqual(stats['week_count'], 2)

    def test_empty(self):
        stats = lead_stats([])
        self.assertEqual(stats['total'], 0)
        self.assertEqual(stats['conversion_rate'], 0.0)

    def test_count_by_status(self):
        leads = [{'status': 'new_lead'}, {'status': 'new_lead'}, {'status': 'sem_retorno'}]
        self.assertEqual(count_by_status(leads), {'new_lead': 2, 'sem_retorno': 1})


class KpiTests(TestCase):
    def test_calcular_kpis_gerais(self):
        consultant = User.objects.create_user(
            username='consultor_teste', email='consultor@teste.com', password='password123',
        )
        for status, parcela in (('pago', '100'), ('pago', '50'), ('cancelado', '30'), ('digitado', '20')):
            Sale.objects.create(consultant=consultant, banco='C6', tipo_operacao='Novo',
                                parcela=Decimal(parcela), status=status, data_venda=date(2024, 5, 1))

        kpis = calcular_kpis_gerais(Sale.objects.all())

        self.assertEqual(kpis['kpi_total_sales'], 4)
        self.assertEqual(kpis['kpi_paid_sales'], 2)
        self.assertEqual(kpis['kpi_cancelled_sales'], 1)
        self.assertEqual(kpis['kpi_paid_rate'], Decimal('50'))
        self.assertEqual(kpis['kpi_total_parcela'], Decimal('200'))

    def test_empty_queryset(self):
        kpis = calcular_kpis_gerais(Sale.objects.none())
        self.assertEqual(kpis['kpi_total_sales'], 0)
        self.assertEqual(kpis['kpi_paid_rate'], Decimal('0'))
