from django.core.management.base import BaseCommand
from django.db.models import Max
from django.utils import timezone

from cards.billing import first_of_month, months_between
from cards.models import Purchase
from cards.services import extend_fixed_purchase

from ._options import get_household


class Command(BaseCommand):
    help = "Estende despesas fixas cuja última parcela está perto de acabar (idempotente)."

    def add_arguments(self, parser):
        parser.add_argument("--household", help="Slug do household; padrão: todos.")
        parser.add_argument("--months", type=int, default=6, help="Meses acrescentados a cada despesa.")
        parser.add_argument(
            "--horizon",
            type=int,
            default=2,
            help="Estende quando a última parcela cai em até N meses a partir de hoje.",
        )

    def handle(self, *args, **options):
        current_month = first_of_month(timezone.localdate())
        purchases = Purchase.objects.filter(kind=Purchase.Kind.RECURRING, is_active=True).annotate(
            last_month=Max("installments__statement_month")
        )
        if options.get("household"):
            purchases = purchases.filter(household=get_household(options["household"]))

        created_total = 0
        extended = 0
        for purchase in purchases.filter(last_month__isnull=False).order_by("pk"):
            if months_between(current_month, purchase.last_month) > options["horizon"]:
                continue
            created = extend_fixed_purchase(purchase.household, purchase.pk, options["months"])
            created_total += len(created)
            extended += 1
        self.stdout.write(self.style.SUCCESS(f"Despesas estendidas: {extended}. Parcelas criadas: {created_total}"))
