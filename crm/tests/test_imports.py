import os
import tempfile
from io import StringIO

from django.core.management import call_command
from django.test import SimpleTestCase, TestCase

from crm.exceptions import ValidationError
from crm.imports import clean_cpf, import_leads_file, normalize_header, validate_row
from crm.models import AuditLog, PoolLead, User


def write_csv(test, content):
    handle, path = tempfile.mkstemp(suffix='.csv')
    with os.fdopen(handle, 'w', encoding='utf-8') as f:
        f.write(content)
    test.addCleanup(os.remove, path)
    return path


class CleanHelpersTests(SimpleTestCase):
    def test_clean_cpf(self):
        self.assertEqual(clean_cpf('123.456.789-01'), '12345678901')
        self.assertEqual(clean_cpf('123'), '00000000123')
        self.assertEqual(clean_cpf(''), '')
        self.assertEqual(clean_cpf(None), '')
        self.assertIsNone(clean_cpf('123456789012'))
        # Excel grava CPFs longos em notação científica
        self.assertEqual(clean_cpf('1.2345678901E+10'), '12345678901')

    def test_normalize_header(self):
        self.assertEqual(normalize_header('  Convênio '), 'convenio')
        self.assertEqual(normalize_header('Telefone  1'), 'telefone 1')

    def test_validate_row(self):
        ok = {'name': 'Ana', 'convenio': 'INSS', 'phone': '(11) 99999-0000'}
        row, error = validate_row(ok)
        self.assertIsNone(error)
        self.assertEqual(row['phone'], '11999990000')
        self.assertEqual(row['cpf'], '')

        cases = {
            'Nome vazio': dict(ok, name=' '),
            'Convênio vazio': dict(ok, convenio=''),
            'Telefone 1 inválido': dict(ok, phone='9999'),
            'Telefone 2 inválido': dict(ok, phone2='123'),
            'CPF inválido': dict(ok, cpf='123456789012345'),
        }
        for message, raw in cases.items():
            with self.subTest(message=message):
                self.assertEqual(validate_row(raw), (None, message))


class ImportLeadsFileTests(TestCase):
    CSV = (
        "Nome;Convênio;Telefone 1;Telefone 2;CPF;Tag\n"
        "Ana Souza;INSS;11999990000;;12345678901;quente\n"
        "Bruno Lima;SIAPE;21988887777;2133334444;;\n"
        "Ana Repetida;INSS;11999990000;;;\n"
        ";INSS;11977776666;;;\n"
        "Carla;INSS;1234;;;\n"
    )

    def test_imports_valid_rows(self):
        path = write_csv(self, self.CSV)

        result = import_leads_file(path)

        self.assertEqual(result['total'], 5)
        self.assertEqual(result['imported'], 2)
        self.assertEqual(result['duplicates'], 1)
        self.assertEqual(result['invalid'], 2)
        self.assertEqual([e['line'] for e in result['errors']], [5, 6])

        ana = PoolLead.objects.get(phone='11999990000')
        self.assertEqual(ana.cpf, '12345678901')
        self.assertEqual(ana.ddd, '11')
        self.assertEqual(ana.tag, 'quente')
        self.assertTrue(ana.is_available)
        self.assertEqual(PoolLead.objects.get(name='Bruno Lima').phone2, '2133334444')

    def test_existing_pool_rows_are_duplicates(self):
        PoolLead.objects.create(name='Já existe', phone='21988887777', convenio='SIAPE')
        path = write_csv(self, self.CSV)

        result = import_leads_file(path)

        self.assertEqual(result['imported'], 1)
        self.assertEqual(result['duplicates'], 2)

    def test_empty_file(self):
        path = write_csv(self, "")
        with self.assertRaises(ValidationError):
            import_leads_file(path)
        self.assertFalse(PoolLead.objects.exists())

    def test_missing_columns(self):
        path = write_csv(self, "Nome,CPF\nAna,123\n")
        with self.assertRaises(ValidationError) as ctx:
            import_leads_file(path)
        self.assertIn('convenio', ctx.exception.details['missing'])


class ImportLeadsCommandTests(TestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            username='admin_teste', email='admin@teste.com', password='password123',
            role=User.Role.ADMIN,
        )

    def test_command_logs_result(self):
        path = write_csv(self, "Nome,Convênio,Telefone 1\nAna,INSS,11999990000\nBia,INSS,11999991111\n")

        call_command('import_leads', path, f'--user-id={self.admin.id}', stdout=StringIO())

        log = AuditLog.objects.get(action='fim_carga_csv')
        self.assertEqual(log.user, self.admin)
        self.assertEqual(log.details['rows_found'], 2)
        self.assertEqual(log.details['rows_saved'], 2)
        self.assertEqual(PoolLead.objects.count(), 2)

    def test_command_logs_failure(self):
        path = write_csv(self, "Nome,CPF\nAna,123\n")

        with self.assertRaises(SystemExit):
            call_command('import_leads', path, f'--user-id={self.admin.id}', stdout=StringIO())

        self.assertTrue(AuditLog.objects.filter(action='falha_carga_csv', user=self.admin).exists())

    def test_command_logs_unreadable_file(self):
        path = write_csv(self, "")

        with self.assertRaises(SystemExit):
            call_command('import_leads', path, f'--user-id={self.admin.id}', stdout=StringIO())

        log = AuditLog.objects.get(action='falha_carga_csv')
        self.assertEqual(log.details['status'], 'Falha')
        self.assertFalse(AuditLog.objects.filter(action='fim_carga_csv').exists())
