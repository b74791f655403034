import os
import sys

from django.core.management.base import BaseCommand

from crm.imports import import_leads_file
from crm.models import AuditLog, User


class Command(BaseCommand):
    help = 'Importa leads de um arquivo CSV para a base de leads disponíveis'

    def add_arguments(self, parser):
        parser.add_argument('csv_file', type=str, help='Caminho do CSV (colunas Nome, Convênio, Telefone 1)')
        parser.add_argument('--user-id', type=int, help='ID do utilizador que iniciou a ação', default=None)

    def handle(self, *args, **options):
        self.stdout.write(self.style.SUCCESS('Iniciando importação de leads...'))

        file_path = options['csv_file']
        user = None
        if options['user_id']:
            user = User.objects.filter(id=options['user_id']).first()

        log_details = {"file_type": "leads", "filename": os.path.basename(file_path)}

        try:
            result = import_leads_file(file_path)
        except Exception as e:
            self.stdout.write(self.style.ERROR(f"Erro durante a importação: {e}"))
            log_details.update({"status": "Falha", "error": str(e)})
            AuditLog.objects.create(user=user, action="falha_carga_csv", details=log_details)
            sys.exit(1)

        for error in result['errors'][:20]:
            self.stdout.write(self.style.WARNING(f"Linha {error['line']}: {error['error']}"))

        log_details.update({
            "status": "Sucesso",
            "rows_found": result['total'],
            "rows_saved": result['imported'],
            "duplicates": result['duplicates'],
            "invalid": result['invalid'],
        })
        AuditLog.objects.create(user=user, action="fim_carga_csv", details=log_details)
        self.stdout.write(self.style.SUCCESS(
            f"Importação concluída! {result['imported']} leads importados, "
            f"{result['duplicates']} duplicados, {result['invalid']} inválidos."
        ))
