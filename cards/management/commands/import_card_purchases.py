from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from cards.models import Card
from cards.services_import import commit_import, preview_import

from ._options import get_household, month_option


class Command(BaseCommand):
    help = "Importa compras de cartão a partir de linhas 'DATA, DESCRIÇÃO, VALOR RESPONSÁVEL'."

    def add_arguments(self, parser):
        parser.add_argument("--household", required=True)
        parser.add_argument("--card", type=int, required=True)
        parser.add_argument("--file", type=str)
        parser.add_argument("--text", type=str)
        parser.add_argument("--statement-month", help="AAAA-MM da fatura da parcela inicial de cada linha.")
        parser.add_argument(
            "--force-lines",
            default="",
            help="Linhas duplicadas a importar mesmo assim, separadas por vírgula.",
        )
        parser.add_argument("--commit", action="store_true", help="Grava as compras; sem isso apenas simula.")

    def handle(self, *args, **options):
        text = options.get("text")
        file_path = options.get("file")
        if not text and not file_path:
            raise CommandError("Informe --file ou --text.")
        if text and file_path:
            raise CommandError("Use apenas --file ou --text.")
        if file_path:
            text = Path(file_path).read_text(encoding="utf-8")

        try:
            force_lines = {int(n) for n in options["force_lines"].split(",") if n.strip()}
        except ValueError:
            raise CommandError("--force-lines deve conter números de linha.")

        household = get_household(options["household"])
        try:
            card = Card.objects.get(pk=options["card"], household=household)
        except Card.DoesNotExist:
            raise CommandError(f"Cartão não encontrado: {options['card']}")
        statement_month = month_option(options["statement_month"]) if options.get("statement_month") else None

        preview = preview_import(household, card.pk, text, statement_month=statement_month)
        for candidate in preview.candidates:
            candidate.force = candidate.line in force_lines
            if not candidate.is_valid:
                status = f"inválida: {candidate.error}"
            elif candidate.is_duplicate:
                status = f"duplicada ({candidate.duplicate_origin}) de {candidate.duplicate_reference}"
                if candidate.force:
                    status += " [forçada]"
            else:
                status = f"{candidate.start_installment}/{candidate.installments_count} a partir de {candidate.statement_month:%m/%Y}"
            self.stdout.write(f"Linha {candidate.line}: {candidate.description or '-'} -> {status}")

        self.stdout.write(
            f"Importar: {preview.to_import} | Duplicadas: {preview.duplicates} | Inválidas: {preview.invalid}"
        )
        if not options["commit"]:
            self.stdout.write(self.style.WARNING("Simulação: nada foi gravado (use --commit)."))
            return

        result = commit_import(household, card.pk, preview.candidates)
        for detail in result.details:
            if detail.error:
                self.stderr.write(f"Linha {detail.line}: {detail.error}")
        self.stdout.write(
            self.style.SUCCESS(
                f"Importadas: {result.succeeded} | Falhas: {result.failed} | Ignoradas: {result.skipped}"
            )
        )
