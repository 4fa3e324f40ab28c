from __future__ import annotations

import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from .billing import first_of_month
from .models import Card, Installment, Purchase, StatementAdvance
from .services import create_adjustment, get_statement_installments, statement_totals
from .utils import ZERO, quantize_money, to_decimal

logger = logging.getLogger(__name__)


def pick_installments_to_settle(installments, amount: Decimal) -> list:
    """
    Walk ``installments`` in order, taking each one that still fits in ``amount``.

    The walk stops at the first installment larger than what remains, so a
    smaller installment further down the list is never reached.
    """
    remaining = amount
    picked = []
    for installment in installments:
        if remaining <= ZERO:
            break
        value = abs(installment.amount)
        if value > remaining:
            break
        picked.append(installment)
        remaining -= value
    return picked


def advance_statement(
    household,
    card_id,
    statement_month,
    amount,
    *,
    settle_installments=False,
    note="",
) -> StatementAdvance:
    card = Card.objects.get(pk=card_id, household=household)
    month = first_of_month(statement_month)
    try:
        amount = quantize_money(to_decimal(amount))
    except ValueError:
        raise ValidationError({"amount": "Informe um valor válido."}, code="invalid")
    if amount <= ZERO:
        raise ValidationError({"amount": "Informe um valor válido."}, code="invalid")

    pending = statement_totals(household, card.pk, month).pending
    if amount > pending:
        raise ValidationError(
            {"amount": f"Valor maior que o pendente da fatura ({pending})."}, code="exceeds_pending"
        )

    with transaction.atomic():
        adjustment = create_adjustment(
            household,
            card.pk,
            month,
            amount,
            Purchase.AdjustmentType.CREDIT,
            f"Adiantamento de fatura - {card.name}",
            note=note,
            settled=True,
        )
        advance = StatementAdvance.objects.create(
            household=household,
            card=card,
            statement_month=month,
            amount=amount,
            adjustment=adjustment,
            note=(note or "").strip(),
        )
        if settle_installments:
            candidates = (
                get_statement_installments(household, card.pk, month)
                .filter(is_settled=False, amount__gt=0)
                .exclude(purchase=adjustment)
            )
            picked = pick_installments_to_settle(candidates, amount)
            Installment.objects.filter(pk__in=[installment.pk for installment in picked]).update(
                is_settled=True, settled_at=timezone.now()
            )
            advance.settled_installments.set(picked)
            logger.info("Adiantamento %s quitou %s parcelas.", advance.pk, len(picked))

    logger.info("Adiantamento %s de %s na fatura %s do cartão %s.", advance.pk, amount, month, card.pk)
    return advance


def undo_statement_advance(household, advance_id) -> list[int]:
    """Desfaz o adiantamento e devolve os ids das parcelas reabertas."""
    with transaction.atomic():
        advance = StatementAdvance.objects.select_related("adjustment").get(pk=advance_id, household=household)
        reopened = list(advance.settled_installments.values_list("pk", flat=True))
        Installment.objects.filter(pk__in=reopened).update(is_settled=False, settled_at=None)
        adjustment = advance.adjustment
        advance.delete()
        adjustment.delete()

    logger.info("Adiantamento %s desfeito: %s parcelas reabertas.", advance_id, len(reopened))
    return reopened
