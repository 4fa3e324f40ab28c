from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation

from .billing import resolve_statement_month
from .fingerprints import detect_installment, normalize_text


DATE_PREFIX_RE = re.compile(r"^(\d{4}-\d{2}-\d{2}|\d{2}[/\-]\d{2}[/\-]\d{4})\s*[,;]?\s*")
ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
BR_DATE_RE = re.compile(r"^(\d{2})[/\-](\d{2})[/\-](\d{4})$")
CURRENCY_RE = re.compile(r"R\$\s*", re.IGNORECASE)

# "..., valor responsável" no fim da linha; sem separador, o valor precisa de casas decimais.
TAIL_PATTERNS = [
    re.compile(r"(?:(?<=\D)[,;]|[,;](?=\s))\s*(\d[\d.,]*)\s+(\w+)\s*$"),
    re.compile(r"\s(\d[\d.,]*[.,]\d+)\s+(\w+)\s*$"),
]

HOLDER_ALIASES = {"eu"}


@dataclass(frozen=True)
class ParsedPurchaseLine:
    line: int
    raw_line: str
    purchase_date: date | None = None
    description: str = ""
    amount: Decimal | None = None
    payer_input: str = ""
    payer: object | None = None
    installments_current: int = 1
    installments_total: int = 1
    statement_month: date | None = None
    error: str = ""

    @property
    def is_valid(self) -> bool:
        return not self.error


def parse_amount(text: str) -> Decimal | None:
    """Aceita ``0,16``, ``1.234,56``, ``0.16`` e ``1,234.56``."""
    value = CURRENCY_RE.sub("", (text or "").strip()).strip()
    if not value:
        return None
    last_dot = value.rfind(".")
    last_comma = value.rfind(",")
    if last_comma > last_dot:
        value = value.replace(".", "").replace(",", ".")
    elif last_dot > last_comma:
        value = value.replace(",", "")
    try:
        return Decimal(value)
    except InvalidOperation:
        return None


def parse_date(text: str) -> date | None:
    value = (text or "").strip()
    try:
        match = ISO_DATE_RE.match(value)
        if match:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        match = BR_DATE_RE.match(value)
        if match:
            return date(int(match.group(3)), int(match.group(2)), int(match.group(1)))
    except ValueError:
        return None
    return None


def match_payer(alias: str, payers):
    """Apelido exato, nome exato, ``eu`` para o titular e, por fim, busca parcial sem acentos."""
    wanted = (alias or "").strip().lower()
    if not wanted:
        return None
    payers = list(payers)

    for payer in payers:
        if (payer.nickname or "").lower() == wanted:
            return payer
    for payer in payers:
        if payer.name.lower() == wanted:
            return payer
    if wanted in HOLDER_ALIASES:
        for payer in payers:
            if payer.is_holder:
                return payer

    normalized = normalize_text(wanted)
    for payer in payers:
        if normalized in normalize_text(payer.name) or normalized in normalize_text(payer.nickname):
            return payer
    return None


def _parse_line(number: int, raw_line: str, payers, closing_day: int, resolve_month) -> ParsedPurchaseLine:
    line = raw_line.strip()

    date_match = DATE_PREFIX_RE.match(line)
    if not date_match:
        return ParsedPurchaseLine(number, raw_line, error="Data não encontrada no início da linha")
    purchase_date = parse_date(date_match.group(1))
    if purchase_date is None:
        return ParsedPurchaseLine(number, raw_line, error="Data inválida")

    rest = line[date_match.end():].strip()
    tail = None
    for pattern in TAIL_PATTERNS:
        tail = pattern.search(rest)
        if tail:
            break
    if tail is None:
        return ParsedPurchaseLine(
            number,
            raw_line,
            purchase_date=purchase_date,
            error="Formato inválido: esperado 'valor responsável' no final",
        )

    amount = parse_amount(tail.group(1))
    payer_input = tail.group(2)
    if amount is None or amount <= 0:
        return ParsedPurchaseLine(
            number,
            raw_line,
            purchase_date=purchase_date,
            payer_input=payer_input,
            error=f"Valor inválido: {tail.group(1)}",
        )

    description = rest[: tail.start()].strip()
    description = re.sub(r"^[,;]\s*|[,;]\s*$", "", description).strip()
    if not description:
        return ParsedPurchaseLine(
            number,
            raw_line,
            purchase_date=purchase_date,
            amount=amount,
            payer_input=payer_input,
            error="Descrição não encontrada",
        )

    current, total, _ = detect_installment(description)
    payer = match_payer(payer_input, payers)

    return ParsedPurchaseLine(
        line=number,
        raw_line=raw_line,
        purchase_date=purchase_date,
        description=description,
        amount=amount,
        payer_input=payer_input,
        payer=payer,
        installments_current=current,
        installments_total=total,
        statement_month=resolve_month(purchase_date, closing_day),
        error="" if payer is not None else f'Responsável não encontrado: "{payer_input}"',
    )


def parse_purchase_lines(text: str, payers, closing_day: int, resolve_month=None) -> list[ParsedPurchaseLine]:
    """
    Parse ``DATA, DESCRIÇÃO, VALOR RESPONSÁVEL`` lines, one purchase per line.

    Blank lines are ignored but still count for line numbering. A line that
    cannot be parsed comes back with ``error`` set instead of raising.
    """
    resolve_month = resolve_month or resolve_statement_month
    payers = list(payers)
    items: list[ParsedPurchaseLine] = []
    if not text:
        return items

    for number, raw_line in enumerate(text.splitlines(), start=1):
        if not raw_line.strip():
            continue
        items.append(_parse_line(number, raw_line, payers, closing_day, resolve_month))
    return items
