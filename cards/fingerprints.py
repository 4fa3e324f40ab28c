from __future__ import annotations

import re
import unicodedata
from datetime import date
from decimal import Decimal

from .billing import add_months, first_of_month
from .utils import quantize_money, to_decimal

_SPACE_RE = re.compile(r"\s+")
_TRAILING_SEPARATORS_RE = re.compile(r"[\s\-–:|/,;]+$")

# Ordem importa: o primeiro padrão que casar define a parcela detectada.
INSTALLMENT_PATTERNS = [
    re.compile(r"[-–]\s*(?:parcela|installment)\s+(\d+)\s*/\s*(\d+)", re.IGNORECASE),
    re.compile(r"(?:parcela|installment)\s+(\d+)\s*/\s*(\d+)", re.IGNORECASE),
    re.compile(r"[-–]\s*(\d+)/(\d+)"),
    re.compile(r"\((\d+)/(\d+)\)"),
    re.compile(r"\s(\d+)/(\d+)$"),
]


def normalize_text(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text or "")
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _SPACE_RE.sub(" ", without_marks.lower()).strip()


def _trim_separators(text: str) -> str:
    return _TRAILING_SEPARATORS_RE.sub("", text.strip()).strip()


def strip_installment_suffix(text: str) -> str:
    cleaned = (text or "").strip()
    for pattern in INSTALLMENT_PATTERNS:
        cleaned = _trim_separators(pattern.sub(" ", cleaned))
    return _SPACE_RE.sub(" ", cleaned).strip()


def detect_installment(text: str) -> tuple[int, int, str]:
    """Return ``(current, total, description_without_marker)``; ``(1, 1, text)`` when absent."""
    for pattern in INSTALLMENT_PATTERNS:
        match = pattern.search(text or "")
        if not match:
            continue
        current, total = int(match.group(1)), int(match.group(2))
        if 0 < current <= total:
            cleaned = _trim_separators(text[: match.start()] + " " + text[match.end():])
            return current, total, _SPACE_RE.sub(" ", cleaned)
    return 1, 1, text


def base_statement_month(first_month: date, start_installment: int) -> date:
    return add_months(first_of_month(first_month), -(int(start_installment) - 1))


def base_description(description: str) -> str:
    return normalize_text(strip_installment_suffix(description))


def build_fingerprint(
    description: str,
    installments_count: int,
    total_amount: Decimal,
    first_month: date,
    start_installment: int = 1,
) -> str:
    total = quantize_money(to_decimal(total_amount))
    base_month = base_statement_month(first_month, start_installment)
    return f"{base_description(description)}|{int(installments_count)}|{total:.2f}|{base_month:%Y-%m}"


def purchase_fingerprint(purchase) -> str:
    return build_fingerprint(
        purchase.description,
        purchase.installments_count,
        purchase.total_amount,
        purchase.statement_month,
        purchase.start_installment,
    )
