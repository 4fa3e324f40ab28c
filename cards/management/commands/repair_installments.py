from datetime import date

from django.core.management.base import BaseCommand, CommandError

from cards.services_repair import repair_missing_installments

from ._options import get_household


class Command(BaseCommand):
    help = "Regenera parcelas ausentes de compras ativas (idempotente)."

    def add_arguments(self, parser):
        parser.add_argument("--household", help="Slug do household; padrão: todos.")
        parser.add_argument("--date", help="Data de referência AAAA-MM-DD para marcar meses passados como pagos.")

    def handle(self, *args, **options):
        household = get_household(options["household"]) if options.get("household") else None
        today = None
        if options.get("date"):
            try:
                today = date.fromisoformat(options["date"])
            except ValueError:
                raise CommandError(f"Data inválida: {options['date']}")

        report = repair_missing_installments(household=household, today=today)

        for failure in report.failures:
            self.stderr.write(f"Compra {failure.purchase_id} ({failure.description}): {failure.error}")
        self.stdout.write(
            self.style.SUCCESS(
                f"Compras verificadas: {report.purchases_checked}. "
                f"Parcelas regeneradas: {report.installments_regenerated}. "
                f"Falhas: {len(report.failures)}."
            )
        )
