from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from .billing import add_months, first_of_month, get_statement_resolver
from .models import Card, Category, Installment, Payer, Purchase, StatementAdvance
from .utils import ZERO, installment_value, quantize_money, to_decimal

logger = logging.getLogger(__name__)

EXPANDABLE_KINDS = (Purchase.Kind.SINGLE, Purchase.Kind.INSTALLMENT, Purchase.Kind.RECURRING)

_UNSET = object()


class ReversalScope:
    THIS = "this"
    THIS_AND_FUTURE = "this_and_future"
    CHOICES = (THIS, THIS_AND_FUTURE)


@dataclass
class PurchaseInput:
    """
    Dados de entrada de uma compra.

    ``statement_month`` vazio é resolvido pela data da compra e o fechamento
    do cartão; ``months_ahead`` só vale para despesas fixas (padrão
    ``CARDS_FIXED_MONTHS_AHEAD``).
    """

    description: str
    total_amount: Decimal
    purchase_date: date
    kind: str = Purchase.Kind.SINGLE
    installments_count: int = 1
    start_installment: int = 1
    statement_month: date | None = None
    months_ahead: int | None = None
    category_id: int | None = None
    payer_id: int | None = None
    note: str = ""


@dataclass(frozen=True)
class StatementTotals:
    total: Decimal
    settled: Decimal
    pending: Decimal


def _money_or_error(value, field: str) -> Decimal:
    try:
        return quantize_money(to_decimal(value))
    except (ValueError, TypeError):
        raise ValidationError({field: "Valor inválido."}, code="invalid")


def validate_purchase_input(data: PurchaseInput) -> PurchaseInput:
    description = (data.description or "").strip()
    if not description:
        raise ValidationError({"description": "Descrição é obrigatória."}, code="required")
    if data.purchase_date is None:
        raise ValidationError({"purchase_date": "Data da compra é obrigatória."}, code="required")

    total = _money_or_error(data.total_amount, "total_amount")
    if total <= ZERO:
        raise ValidationError({"total_amount": "Valor deve ser maior que zero."}, code="invalid")

    count = int(data.installments_count or 1)
    start = int(data.start_installment or 1)

    if data.kind == Purchase.Kind.SINGLE:
        count, start = 1, 1
    elif data.kind == Purchase.Kind.INSTALLMENT:
        if count < 2:
            raise ValidationError(
                {"installments_count": "Compra parcelada deve ter pelo menos 2 parcelas."}, code="invalid"
            )
    elif data.kind == Purchase.Kind.RECURRING:
        count = int(data.months_ahead or settings.CARDS_FIXED_MONTHS_AHEAD)
        start = 1
        if count < 1:
            raise ValidationError({"months_ahead": "Informe ao menos 1 mês."}, code="invalid")
    else:
        raise ValidationError({"kind": "Tipo de lançamento inválido."}, code="invalid")

    if start < 1 or start > count:
        raise ValidationError({"start_installment": "Parcela inicial inválida."}, code="invalid")

    return dataclasses.replace(
        data,
        description=description,
        total_amount=total,
        installments_count=count,
        start_installment=start,
        statement_month=first_of_month(data.statement_month) if data.statement_month else None,
        note=(data.note or "").strip(),
    )


def _get_owned(model, household, pk):
    if pk is None:
        return None
    return model.objects.get(pk=pk, household=household)


def installment_amount_for(purchase: Purchase) -> Decimal:
    if purchase.kind == Purchase.Kind.RECURRING:
        return quantize_money(purchase.total_amount)
    if purchase.kind == Purchase.Kind.ADJUSTMENT:
        value = quantize_money(abs(purchase.total_amount))
        return -value if purchase.adjustment_type == Purchase.AdjustmentType.CREDIT else value
    value = installment_value(abs(purchase.total_amount), purchase.installments_count)
    if purchase.kind == Purchase.Kind.REVERSAL:
        return -value
    return value


def build_installment(
    purchase: Purchase,
    number: int,
    *,
    amount: Decimal | None = None,
    statement_month: date | None = None,
    settle_before: date | None = None,
) -> Installment:
    if statement_month is None:
        statement_month = add_months(purchase.statement_month, number - purchase.start_installment)
    settled = settle_before is not None and statement_month < settle_before
    return Installment(
        household_id=purchase.household_id,
        purchase=purchase,
        number=number,
        installments_total=purchase.installments_count,
        amount=installment_amount_for(purchase) if amount is None else amount,
        statement_month=statement_month,
        is_settled=settled,
        settled_at=timezone.now() if settled else None,
        recurrence=(
            Installment.Recurrence.FIXED
            if purchase.kind == Purchase.Kind.RECURRING
            else Installment.Recurrence.NORMAL
        ),
    )


def _insert_installment(row: Installment) -> bool:
    """Insert one row; ``False`` when the same (purchase, number) is already active."""
    row.pk = None
    row._state.adding = True
    try:
        with transaction.atomic():
            row.save(force_insert=True)
    except IntegrityError:
        exists = Installment.objects.filter(
            purchase_id=row.purchase_id, number=row.number, is_active=True
        ).exists()
        if not exists:
            raise
        logger.info("Parcela %s da compra %s já existe; ignorada.", row.number, row.purchase_id)
        return False
    return True


def insert_installments(rows: list[Installment]) -> list[Installment]:
    if not rows:
        return []
    try:
        with transaction.atomic():
            return Installment.objects.bulk_create(rows)
    except IntegrityError:
        logger.info("Conflito ao inserir %s parcelas em lote; inserindo uma a uma.", len(rows))
    return [row for row in rows if _insert_installment(row)]


def expand_installments(
    purchase: Purchase,
    *,
    numbers=None,
    skip_numbers=(),
    months=None,
    settle_before: date | None = None,
) -> list[Installment]:
    """
    Create the installments of ``purchase`` for ``numbers`` (default: the whole window).

    ``months`` maps a number to its statement month; numbers absent from it
    follow the purchase window one month apart.
    """
    if numbers is None:
        numbers = range(purchase.start_installment, purchase.installments_count + 1)
    skip = set(skip_numbers)
    months = months or {}
    amount = installment_amount_for(purchase)
    rows = [
        build_installment(
            purchase,
            number,
            amount=amount,
            statement_month=months.get(number),
            settle_before=settle_before,
        )
        for number in numbers
        if number not in skip
    ]
    return insert_installments(rows)


def create_purchase(household, card_id, data: PurchaseInput) -> Purchase:
    data = validate_purchase_input(data)
    card = Card.objects.get(pk=card_id, household=household)
    category = _get_owned(Category, household, data.category_id)
    payer = _get_owned(Payer, household, data.payer_id)
    statement_month = data.statement_month or first_of_month(
        get_statement_resolver()(data.purchase_date, card.closing_day)
    )

    with transaction.atomic():
        purchase = Purchase.objects.create(
            household=household,
            card=card,
            description=data.description,
            total_amount=data.total_amount,
            installments_count=data.installments_count,
            start_installment=data.start_installment,
            purchase_date=data.purchase_date,
            statement_month=statement_month,
            kind=data.kind,
            category=category,
            payer=payer,
            note=data.note,
        )
        expand_installments(purchase)
        if not purchase.installments.filter(is_active=True).exists():
            raise DatabaseError(f"Nenhuma parcela criada para a compra {purchase.pk}.")

    logger.info(
        "Compra %s criada: %s parcelas a partir de %s (cartão %s).",
        purchase.pk,
        purchase.expected_installments,
        statement_month,
        card.pk,
    )
    return purchase


def update_purchase(
    household,
    purchase_id,
    *,
    description=None,
    total_amount=None,
    statement_month=None,
    start_installment=None,
    installments_count=None,
    category_id=_UNSET,
    payer_id=_UNSET,
    note=None,
) -> Purchase:
    with transaction.atomic():
        purchase = Purchase.objects.select_for_update().get(pk=purchase_id, household=household)
        active = purchase.installments.filter(is_active=True)
        # Lido antes de qualquer escrita: a regeneração depende deste conjunto.
        settled_numbers = set(active.filter(is_settled=True).values_list("number", flat=True))
        has_unsettled = active.filter(is_settled=False).exists()

        new_total = (
            _money_or_error(total_amount, "total_amount") if total_amount is not None else purchase.total_amount
        )
        new_month = first_of_month(statement_month) if statement_month else purchase.statement_month
        new_start = int(start_installment) if start_installment is not None else purchase.start_installment
        new_count = int(installments_count) if installments_count is not None else purchase.installments_count

        total_changed = new_total != purchase.total_amount
        window_changed = (new_month, new_start, new_count) != (
            purchase.statement_month,
            purchase.start_installment,
            purchase.installments_count,
        )

        if total_changed or window_changed:
            if settled_numbers and not has_unsettled:
                raise ValidationError(
                    "Compra totalmente paga: valor e parcelas não podem mais ser alterados.",
                    code="settled",
                )
            if new_total <= ZERO:
                raise ValidationError({"total_amount": "Valor deve ser maior que zero."}, code="invalid")
            if new_start < 1 or new_start > new_count:
                raise ValidationError({"start_installment": "Parcela inicial inválida."}, code="invalid")
            if purchase.kind == Purchase.Kind.INSTALLMENT and new_count < 2:
                raise ValidationError(
                    {"installments_count": "Compra parcelada deve ter pelo menos 2 parcelas."}, code="invalid"
                )
            if purchase.kind in (Purchase.Kind.SINGLE, Purchase.Kind.ADJUSTMENT) and new_count != 1:
                raise ValidationError(
                    {"installments_count": "Este lançamento tem apenas 1 parcela."}, code="invalid"
                )

        if description is not None:
            description = description.strip()
            if not description:
                raise ValidationError({"description": "Descrição é obrigatória."}, code="required")
            purchase.description = description
        if category_id is not _UNSET:
            purchase.category = _get_owned(Category, household, category_id)
        if payer_id is not _UNSET:
            purchase.payer = _get_owned(Payer, household, payer_id)
        if note is not None:
            purchase.note = note.strip()

        purchase.total_amount = new_total
        purchase.statement_month = new_month
        purchase.start_installment = new_start
        purchase.installments_count = new_count
        purchase.save()

        if window_changed:
            deleted, _ = active.filter(is_settled=False).delete()
            created = expand_installments(purchase, skip_numbers=settled_numbers)
            logger.info(
                "Compra %s: %s parcelas em aberto removidas, %s recriadas (%s pagas preservadas).",
                purchase.pk,
                deleted,
                len(created),
                len(settled_numbers),
            )
        elif total_changed:
            updated = active.filter(is_settled=False).update(amount=installment_amount_for(purchase))
            logger.info("Compra %s: valor atualizado em %s parcelas em aberto.", purchase.pk, updated)

    return purchase


def reversal_months(reversal: Purchase) -> dict:
    """Mês de cada parcela do estorno, tirado das parcelas estornadas que ainda existem."""
    if reversal.reversed_purchase_id is None or reversal.reversed_from_number is None:
        return {}
    targets = Installment.objects.filter(
        purchase_id=reversal.reversed_purchase_id,
        is_active=True,
        number__gte=reversal.reversed_from_number,
    ).order_by("number")[: reversal.installments_count]
    return {number: target.statement_month for number, target in enumerate(targets, start=1)}


def reverse_installment(household, installment_id, scope, *, amount=None, reason="", note="") -> Purchase:
    if scope not in ReversalScope.CHOICES:
        raise ValidationError({"scope": "Escolha o escopo do estorno."}, code="required")

    installment = Installment.objects.select_related("purchase").get(
        pk=installment_id, household=household, is_active=True
    )
    original = installment.purchase
    if original.kind in (Purchase.Kind.ADJUSTMENT, Purchase.Kind.REVERSAL):
        raise ValidationError("Ajustes e estornos não podem ser estornados.", code="invalid")

    if scope == ReversalScope.THIS:
        targets = [installment]
    else:
        targets = list(
            original.installments.filter(is_active=True, number__gte=installment.number).order_by("number")
        )

    maximum = quantize_money(sum((abs(target.amount) for target in targets), ZERO))
    total = maximum if amount is None else abs(_money_or_error(amount, "amount"))
    if total <= ZERO:
        raise ValidationError({"amount": "Valor inválido."}, code="invalid")
    if total > maximum:
        raise ValidationError({"amount": f"Valor não pode exceder {maximum}."}, code="invalid")

    with transaction.atomic():
        reversal = Purchase.objects.create(
            household=household,
            card_id=original.card_id,
            description=f"Estorno: {original.description}",
            total_amount=total,
            installments_count=len(targets),
            start_installment=1,
            purchase_date=timezone.localdate(),
            statement_month=targets[0].statement_month,
            kind=Purchase.Kind.REVERSAL,
            category_id=original.category_id,
            payer_id=original.payer_id,
            reversed_purchase=original,
            reversed_from_number=installment.number,
            note=" - ".join(part.strip() for part in (reason, note) if part and part.strip()),
        )
        expand_installments(
            reversal,
            months={number: target.statement_month for number, target in enumerate(targets, start=1)},
        )

    logger.info(
        "Estorno %s criado para a compra %s: %s parcela(s) a partir da %s.",
        reversal.pk,
        original.pk,
        len(targets),
        installment.number,
    )
    return reversal


def create_adjustment(
    household,
    card_id,
    statement_month,
    amount,
    adjustment_type,
    description,
    *,
    category_id=None,
    payer_id=None,
    note="",
    settled=False,
) -> Purchase:
    if adjustment_type not in Purchase.AdjustmentType.values:
        raise ValidationError({"adjustment_type": "Tipo de ajuste inválido."}, code="invalid")
    value = _money_or_error(amount, "amount")
    if value <= ZERO:
        raise ValidationError({"amount": "Valor inválido."}, code="invalid")
    description = (description or "").strip()
    if not description:
        raise ValidationError({"description": "Informe a descrição."}, code="required")

    card = Card.objects.get(pk=card_id, household=household)
    category = _get_owned(Category, household, category_id)
    payer = _get_owned(Payer, household, payer_id)

    with transaction.atomic():
        adjustment = Purchase.objects.create(
            household=household,
            card=card,
            description=description,
            total_amount=value,
            installments_count=1,
            start_installment=1,
            purchase_date=timezone.localdate(),
            statement_month=first_of_month(statement_month),
            kind=Purchase.Kind.ADJUSTMENT,
            adjustment_type=adjustment_type,
            category=category,
            payer=payer,
            note=(note or "").strip(),
        )
        expand_installments(adjustment)
        if settled:
            adjustment.installments.update(is_settled=True, settled_at=timezone.now())
    return adjustment


def set_installment_settled(household, installment_id, settled=True) -> Installment:
    installment = Installment.objects.get(pk=installment_id, household=household, is_active=True)
    if installment.is_settled == settled:
        return installment
    installment.is_settled = settled
    installment.settled_at = timezone.now() if settled else None
    installment.save(update_fields=["is_settled", "settled_at"])
    return installment


def get_statement_installments(household, card_id, statement_month):
    return (
        Installment.objects.filter(
            household=household,
            purchase__card_id=card_id,
            statement_month=first_of_month(statement_month),
            is_active=True,
        )
        .select_related("purchase", "purchase__payer", "purchase__category")
        .order_by("purchase__purchase_date", "purchase_id", "number")
    )


def statement_totals(household, card_id, statement_month) -> StatementTotals:
    money = DecimalField(max_digits=14, decimal_places=2)
    totals = get_statement_installments(household, card_id, statement_month).aggregate(
        total=Coalesce(Sum("amount"), Value(ZERO), output_field=money),
        settled=Coalesce(Sum("amount", filter=Q(is_settled=True)), Value(ZERO), output_field=money),
    )
    total = quantize_money(totals["total"])
    settled = quantize_money(totals["settled"])
    return StatementTotals(total=total, settled=settled, pending=total - settled)


def settle_statement(household, card_id, statement_month) -> int:
    card = Card.objects.get(pk=card_id, household=household)
    updated = (
        get_statement_installments(household, card.pk, statement_month)
        .filter(is_settled=False)
        .update(is_settled=True, settled_at=timezone.now())
    )
    logger.info("Fatura %s do cartão %s: %s parcelas quitadas.", statement_month, card.pk, updated)
    return updated


def delete_purchase(household, purchase_id) -> str:
    with transaction.atomic():
        purchase = Purchase.objects.select_for_update().get(pk=purchase_id, household=household)
        if StatementAdvance.objects.filter(adjustment=purchase).exists():
            raise ValidationError("Desfaça o adiantamento em vez de excluir o ajuste.", code="protected")
        # Estornos acompanham a compra: sem ela, o crédito não tem contrapartida.
        series = [purchase, *purchase.reversals.all()]
        series_ids = [item.pk for item in series]
        if Installment.objects.filter(purchase_id__in=series_ids, is_settled=True).exists():
            Installment.objects.filter(purchase_id__in=series_ids, is_active=True, is_settled=False).update(
                is_active=False
            )
            Purchase.objects.filter(pk__in=series_ids).update(is_active=False, updated_at=timezone.now())
            logger.info("Compra %s e %s estorno(s) desativados (há parcelas pagas).", purchase.pk, len(series) - 1)
            return "retired"
        Purchase.objects.filter(pk__in=series_ids[1:]).delete()
        purchase.delete()
    logger.info("Compra %s excluída com suas parcelas e %s estorno(s).", purchase_id, len(series) - 1)
    return "deleted"


def end_fixed_purchase(household, purchase_id, today=None) -> int:
    current_month = first_of_month(today or timezone.localdate())
    with transaction.atomic():
        purchase = Purchase.objects.select_for_update().get(pk=purchase_id, household=household)
        if purchase.kind != Purchase.Kind.RECURRING:
            raise ValidationError("Apenas despesas fixas podem ser encerradas.", code="invalid")
        purchase.is_active = False
        purchase.save(update_fields=["is_active", "updated_at"])
        return purchase.installments.filter(
            is_active=True, is_settled=False, statement_month__gte=current_month
        ).update(is_active=False)


def extend_fixed_purchase(household, purchase_id, months=6) -> list[Installment]:
    months = int(months)
    if months < 1:
        raise ValidationError({"months": "Informe ao menos 1 mês."}, code="invalid")
    with transaction.atomic():
        purchase = Purchase.objects.select_for_update().get(
            pk=purchase_id, household=household, kind=Purchase.Kind.RECURRING, is_active=True
        )
        last_number = purchase.installments_count
        purchase.installments_count = last_number + months
        purchase.save(update_fields=["installments_count", "updated_at"])
        return expand_installments(purchase, numbers=range(last_number + 1, last_number + months + 1))
