from django.core.management.base import BaseCommand, CommandError
from django.utils.text import slugify

from cards.models import Card, Payer
from core.models import Household


class Command(BaseCommand):
    help = "Cria household com cartões e responsáveis iniciais (idempotente)."

    def add_arguments(self, parser):
        parser.add_argument("--household-name", required=True)
        parser.add_argument("--cards", default="", help="Lista separada por vírgulas: nome:fechamento:vencimento")
        parser.add_argument("--payers", default="", help="Lista separada por vírgulas; o primeiro é o titular")

    def handle(self, *args, **options):
        household_name = options["household_name"].strip()
        if not household_name:
            raise CommandError("Nome do household vazio.")

        household, created = Household.objects.get_or_create(
            slug=slugify(household_name),
            defaults={"name": household_name},
        )
        if created:
            self.stdout.write(self.style.SUCCESS(f"Household criado: {household.name}"))
        else:
            self.stdout.write(f"Household existente: {household.name}")

        for raw in [c.strip() for c in options["cards"].split(",") if c.strip()]:
            parts = raw.split(":")
            try:
                closing_day = int(parts[1]) if len(parts) > 1 else 25
                due_day = int(parts[2]) if len(parts) > 2 else 5
            except ValueError:
                raise CommandError(f"Cartão inválido: {raw}")
            card, card_created = Card.objects.get_or_create(
                household=household,
                name=parts[0].strip(),
                defaults={"closing_day": closing_day, "due_day": due_day},
            )
            if card_created:
                self.stdout.write(self.style.SUCCESS(f"Cartão criado: {card.name}"))
            else:
                self.stdout.write(f"Cartão existente: {card.name}")

        payer_names = [p.strip() for p in options["payers"].split(",") if p.strip()]
        for position, name in enumerate(payer_names):
            payer, payer_created = Payer.objects.get_or_create(
                household=household,
                name=name,
                defaults={"is_holder": position == 0},
            )
            if payer_created:
                self.stdout.write(self.style.SUCCESS(f"Responsável criado: {payer.name}"))
            else:
                self.stdout.write(f"Responsável existente: {payer.name}")
