from __future__ import annotations

from calendar import monthrange
from datetime import date, timedelta

from django.conf import settings
from django.utils.module_loading import import_string


def last_day_of_month(year: int, month: int) -> int:
    return monthrange(year, month)[1]


def normalize_day(year: int, month: int, day: int) -> date:
    safe_day = min(day, last_day_of_month(year, month))
    return date(year, month, safe_day)


def first_of_month(value: date) -> date:
    return value.replace(day=1)


def add_months(month: date, months: int) -> date:
    """Shift a first-of-month date by ``months`` (negative goes back)."""
    total_month = month.month - 1 + months
    return date(month.year + total_month // 12, total_month % 12 + 1, 1)


def parse_month(value: str) -> date:
    """``AAAA-MM`` (ou uma data ISO completa) para o primeiro dia do mês."""
    parts = (value or "").strip().split("-")
    if len(parts) not in (2, 3):
        raise ValueError(f"mês inválido: {value!r}")
    return date(int(parts[0]), int(parts[1]), 1)


def months_between(start: date, end: date) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


def get_statement_window(statement_month: date, closing_day: int):
    year, month = statement_month.year, statement_month.month
    closing_date = normalize_day(year, month, closing_day)
    previous = add_months(first_of_month(statement_month), -1)
    previous_closing = normalize_day(previous.year, previous.month, closing_day)
    period_start = previous_closing + timedelta(days=1)
    period_end = closing_date
    return closing_date, period_start, period_end


def get_due_date(statement_month: date, due_day: int, closing_day: int) -> date:
    # Vencimento antes do fechamento cai no mês seguinte ao da fatura.
    target = statement_month if due_day > closing_day else add_months(first_of_month(statement_month), 1)
    return normalize_day(target.year, target.month, due_day)


def resolve_statement_month(purchase_date: date, closing_day: int) -> date:
    """
    Mês da fatura de uma compra.

    Compras antes do dia de fechamento entram na fatura do próprio mês;
    no dia do fechamento ou depois, vão para a fatura do mês seguinte.
    Fechamento 5: 04/02 -> fevereiro, 05/02 -> março.
    """
    closing = normalize_day(purchase_date.year, purchase_date.month, closing_day)
    month = first_of_month(purchase_date)
    if purchase_date < closing:
        return month
    return add_months(month, 1)


def get_statement_resolver():
    return import_string(settings.CARDS_STATEMENT_RESOLVER)
