from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from cards.models import Card
from cards.services_advances import advance_statement

from ._options import get_household, month_option, validation_message


class Command(BaseCommand):
    help = "Registra um adiantamento de fatura como crédito, opcionalmente quitando as parcelas mais antigas."

    def add_arguments(self, parser):
        parser.add_argument("--household", required=True)
        parser.add_argument("--card", type=int, required=True)
        parser.add_argument("--month", required=True, help="AAAA-MM")
        parser.add_argument("--amount", required=True)
        parser.add_argument("--settle", action="store_true", help="Quita parcelas em ordem de data até o valor.")
        parser.add_argument("--note", default="")

    def handle(self, *args, **options):
        household = get_household(options["household"])
        month = month_option(options["month"])
        try:
            advance = advance_statement(
                household,
                options["card"],
                month,
                options["amount"],
                settle_installments=options["settle"],
                note=options["note"],
            )
        except Card.DoesNotExist:
            raise CommandError(f"Cartão não encontrado: {options['card']}")
        except ValidationError as exc:
            raise CommandError(validation_message(exc))

        settled = list(advance.settled_installments.values_list("pk", flat=True))
        self.stdout.write(
            self.style.SUCCESS(
                f"Adiantamento {advance.pk} registrado: {advance.amount} "
                f"(ajuste {advance.adjustment_id}, {len(settled)} parcelas quitadas)."
            )
        )
        if settled:
            self.stdout.write("Parcelas: " + ", ".join(str(pk) for pk in settled))
