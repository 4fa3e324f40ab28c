from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.conf import settings

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def to_decimal(value) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"valor monetário inválido: {value!r}")


def installment_value(total: Decimal, count: int) -> Decimal:
    """round2(total / count); the rounding remainder is not redistributed."""
    if count <= 0:
        raise ValueError("installments_count must be positive")
    return quantize_money(to_decimal(total) / Decimal(count))


def calculate_installment_values(amount, installments, purchase_total=None):
    """
    Regra de importação de parcelados:
    - Se parcelas > 1 e NÃO houver total da compra explícito, o valor da linha
      já é o valor da parcela lançada na fatura.
    - Se houver total explícito, a parcela é o total dividido.
    - Para 1x, parcela e total são iguais.
    """
    installments = int(installments or 1)
    if installments <= 0:
        installments = 1

    value = quantize_money(to_decimal(amount))

    if installments == 1:
        return value, value, "avista"

    if purchase_total is not None:
        total = quantize_money(to_decimal(purchase_total))
        return total, installment_value(total, installments), "total_informado"

    return quantize_money(value * Decimal(installments)), value, "parcela_informada"


def duplicate_tolerance() -> Decimal:
    return to_decimal(getattr(settings, "CARDS_DUPLICATE_TOLERANCE", "0.10"))
