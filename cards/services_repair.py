from __future__ import annotations

import logging
from dataclasses import dataclass, field

from django.db import DatabaseError, transaction
from django.utils import timezone

from core.models import SystemLog
from core.system_logs import record_error

from .billing import first_of_month
from .models import Installment, Purchase
from .services import expand_installments, reversal_months

logger = logging.getLogger(__name__)


@dataclass
class RepairFailure:
    purchase_id: int
    description: str
    error: str


@dataclass
class RepairReport:
    purchases_checked: int = 0
    installments_regenerated: int = 0
    repaired_purchase_ids: list[int] = field(default_factory=list)
    failures: list[RepairFailure] = field(default_factory=list)


def missing_installment_numbers(purchase: Purchase) -> list[int]:
    expected = range(purchase.start_installment, purchase.installments_count + 1)
    existing = set(
        Installment.objects.filter(
            purchase=purchase,
            is_active=True,
            number__gte=purchase.start_installment,
            number__lte=purchase.installments_count,
        ).values_list("number", flat=True)
    )
    if len(existing) >= len(expected):
        return []
    return [number for number in expected if number not in existing]


def repair_purchase(purchase: Purchase, *, today=None) -> list[Installment]:
    """Recria as parcelas que faltam; meses anteriores ao atual voltam como pagas."""
    missing = missing_installment_numbers(purchase)
    if not missing:
        return []
    current_month = first_of_month(today or timezone.localdate())
    months = reversal_months(purchase) if purchase.kind == Purchase.Kind.REVERSAL else None
    with transaction.atomic():
        return expand_installments(purchase, numbers=missing, months=months, settle_before=current_month)


def repair_missing_installments(*, household=None, today=None) -> RepairReport:
    purchases = Purchase.objects.filter(is_active=True).select_related("household").order_by("pk")
    if household is not None:
        purchases = purchases.filter(household=household)

    report = RepairReport()
    for purchase in list(purchases):
        report.purchases_checked += 1
        try:
            created = repair_purchase(purchase, today=today)
        except (DatabaseError, ValueError) as exc:
            logger.exception("Falha ao regenerar parcelas da compra %s", purchase.pk)
            record_error(
                f"Falha ao regenerar parcelas da compra {purchase.pk}: {exc}",
                household=purchase.household,
                source=SystemLog.SOURCE_JOB,
            )
            report.failures.append(RepairFailure(purchase.pk, purchase.description, str(exc)))
            continue
        if created:
            report.installments_regenerated += len(created)
            report.repaired_purchase_ids.append(purchase.pk)
            logger.info("Compra %s: %s parcelas regeneradas.", purchase.pk, len(created))

    logger.info(
        "Reparo concluído: %s compras verificadas, %s parcelas regeneradas, %s falhas.",
        report.purchases_checked,
        report.installments_regenerated,
        len(report.failures),
    )
    return report
