from datetime import timedelta

from django.core.management.base import BaseCommand
from django.db.models import Count
from django.utils import timezone

from core.models import SystemLog


class Command(BaseCommand):
    help = (
        "Apaga registros de erro antigos do reparo de parcelas (JOB) "
        "e das importações de compras (BACKEND)."
    )

    def add_arguments(self, parser):
        parser.add_argument("--days", type=int, default=30, help="Idade mínima em dias (padrão: 30).")
        parser.add_argument(
            "--source",
            choices=[SystemLog.SOURCE_JOB, SystemLog.SOURCE_BACKEND],
            help="Limita a uma origem; padrão: todas.",
        )
        parser.add_argument(
            "--only-resolved",
            action="store_true",
            help="Mantém os registros ainda não tratados no admin.",
        )

    def handle(self, *args, **options):
        logs = SystemLog.objects.filter(created_at__lt=timezone.now() - timedelta(days=options["days"]))
        if options.get("source"):
            logs = logs.filter(source=options["source"])
        if options["only_resolved"]:
            logs = logs.filter(is_resolved=True)

        per_source = dict(logs.order_by().values_list("source").annotate(total=Count("pk")))
        deleted, _ = logs.delete()
        for source, total in sorted(per_source.items()):
            self.stdout.write(f"{source}: {total}")
        self.stdout.write(self.style.SUCCESS(f"{deleted} registros de erro apagados (mais de {options['days']} dias)."))
