from django.core.management.base import BaseCommand, CommandError

from cards.models import StatementAdvance
from cards.services_advances import undo_statement_advance

from ._options import get_household


class Command(BaseCommand):
    help = "Desfaz um adiantamento de fatura e reabre as parcelas que ele quitou."

    def add_arguments(self, parser):
        parser.add_argument("--household", required=True)
        parser.add_argument("--advance", type=int, required=True)

    def handle(self, *args, **options):
        household = get_household(options["household"])
        try:
            reopened = undo_statement_advance(household, options["advance"])
        except StatementAdvance.DoesNotExist:
            raise CommandError(f"Adiantamento não encontrado: {options['advance']}")
        self.stdout.write(self.style.SUCCESS(f"Adiantamento desfeito. Parcelas reabertas: {len(reopened)}"))
