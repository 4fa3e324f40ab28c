from django.core.management.base import BaseCommand, CommandError

from cards.billing import get_due_date, get_statement_window
from cards.models import Card
from cards.services import settle_statement, statement_totals

from ._options import get_household, month_option


class Command(BaseCommand):
    help = "Marca como pagas todas as parcelas em aberto de uma fatura."

    def add_arguments(self, parser):
        parser.add_argument("--household", required=True)
        parser.add_argument("--card", type=int, required=True)
        parser.add_argument("--month", required=True, help="AAAA-MM")

    def handle(self, *args, **options):
        household = get_household(options["household"])
        month = month_option(options["month"])
        try:
            card = Card.objects.get(pk=options["card"], household=household)
        except Card.DoesNotExist:
            raise CommandError(f"Cartão não encontrado: {options['card']}")

        closing_date, _, _ = get_statement_window(month, card.closing_day)
        due_date = get_due_date(month, card.due_day, card.closing_day)
        totals = statement_totals(household, card.pk, month)
        self.stdout.write(f"Fatura {month:%m/%Y} de {card.name}")
        self.stdout.write(f"Fechamento: {closing_date:%d/%m/%Y} | Vencimento: {due_date:%d/%m/%Y}")
        self.stdout.write(f"Total: {totals.total} | Pago: {totals.settled} | Pendente: {totals.pending}")

        updated = settle_statement(household, card.pk, month)
        self.stdout.write(self.style.SUCCESS(f"{updated} parcelas marcadas como pagas."))
