from datetime import datetime

from django.core.management.base import BaseCommand, CommandError

from crm.lead_status import expire_future_contacts


class Command(BaseCommand):
    help = "Devolve para 'Novo Lead' os leads cujo contato futuro já venceu"

    def add_arguments(self, parser):
        parser.add_argument('--date', type=str, help='Data de referência (YYYY-MM-DD). Padrão: hoje', default=None)

    def handle(self, *args, **options):
        today = None
        if options['date']:
            try:
                today = datetime.strptime(options['date'], '%Y-%m-%d').date()
            except ValueError:
                raise CommandError("Formato de data inválido. Use YYYY-MM-DD.")

        expired = expire_future_contacts(today)
        self.stdout.write(self.style.SUCCESS(f"{expired} leads voltaram para Novo Lead."))
