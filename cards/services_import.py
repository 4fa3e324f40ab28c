from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import DatabaseError

from core.system_logs import record_error

from .billing import first_of_month, get_statement_resolver
from .fingerprints import base_description, base_statement_month, build_fingerprint, purchase_fingerprint
from .models import Card, Payer, Purchase
from .services import EXPANDABLE_KINDS, PurchaseInput, create_purchase
from .statement_importer import parse_purchase_lines
from .utils import calculate_installment_values, duplicate_tolerance

logger = logging.getLogger(__name__)


class DuplicateOrigin:
    BATCH = "batch"
    STORE = "store"


@dataclass(frozen=True)
class DuplicateReference:
    purchase_id: int | None
    line: int | None
    description: str
    installment_number: int
    base_month: date

    def __str__(self):
        where = f"compra #{self.purchase_id}" if self.purchase_id else f"linha {self.line}"
        return f'{where} "{self.description}" parcela {self.installment_number} (base {self.base_month:%Y-%m})'


@dataclass
class ImportCandidate:
    line: int
    description: str
    total_amount: Decimal | None
    purchase_date: date | None
    statement_month: date | None
    installments_count: int = 1
    start_installment: int = 1
    installment_amount: Decimal | None = None
    payer_id: int | None = None
    payer_name: str = ""
    category_id: int | None = None
    error: str = ""
    force: bool = False
    is_duplicate: bool = False
    duplicate_origin: str = ""
    duplicate_reference: DuplicateReference | None = None

    @property
    def is_valid(self) -> bool:
        return not self.error

    @property
    def should_import(self) -> bool:
        return self.is_valid and (not self.is_duplicate or self.force)

    @property
    def kind(self) -> str:
        return Purchase.Kind.INSTALLMENT if self.installments_count > 1 else Purchase.Kind.SINGLE

    @property
    def base_month(self) -> date:
        return base_statement_month(self.statement_month, self.start_installment)

    @property
    def fingerprint(self) -> str:
        return build_fingerprint(
            self.description,
            self.installments_count,
            self.total_amount,
            self.statement_month,
            self.start_installment,
        )

    def to_purchase_input(self) -> PurchaseInput:
        return PurchaseInput(
            description=self.description,
            total_amount=self.total_amount,
            purchase_date=self.purchase_date,
            kind=self.kind,
            installments_count=self.installments_count,
            start_installment=self.start_installment,
            statement_month=self.statement_month,
            category_id=self.category_id,
            payer_id=self.payer_id,
        )


@dataclass
class ImportPreview:
    candidates: list[ImportCandidate]

    @property
    def to_import(self) -> int:
        return sum(1 for candidate in self.candidates if candidate.should_import)

    @property
    def duplicates(self) -> int:
        return sum(
            1 for candidate in self.candidates if candidate.is_valid and candidate.is_duplicate and not candidate.force
        )

    @property
    def invalid(self) -> int:
        return sum(1 for candidate in self.candidates if not candidate.is_valid)


@dataclass
class ImportDetail:
    line: int
    purchase_id: int | None = None
    error: str = ""


@dataclass
class ImportResult:
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    details: list[ImportDetail] = field(default_factory=list)


def build_candidates(lines, *, statement_month: date | None = None) -> list[ImportCandidate]:
    candidates = []
    for item in lines:
        total = value = None
        if item.amount is not None:
            total, value, _ = calculate_installment_values(item.amount, item.installments_total)
        month = first_of_month(statement_month) if statement_month else item.statement_month
        candidates.append(
            ImportCandidate(
                line=item.line,
                description=item.description,
                total_amount=total,
                purchase_date=item.purchase_date,
                statement_month=month,
                installments_count=item.installments_total,
                start_installment=item.installments_current,
                installment_amount=value,
                payer_id=getattr(item.payer, "pk", None),
                payer_name=str(item.payer) if item.payer is not None else item.payer_input,
                error=item.error,
            )
        )
    return candidates


def _flag(candidate: ImportCandidate, origin: str, reference: DuplicateReference):
    candidate.is_duplicate = True
    candidate.duplicate_origin = origin
    candidate.duplicate_reference = reference


def check_duplicates(household, card_id, candidates: list[ImportCandidate]) -> list[ImportCandidate]:
    card = Card.objects.get(pk=card_id, household=household)
    for candidate in candidates:
        candidate.is_duplicate = False
        candidate.duplicate_origin = ""
        candidate.duplicate_reference = None
    valid = [candidate for candidate in candidates if candidate.is_valid]

    groups = defaultdict(list)
    for candidate in valid:
        groups[candidate.fingerprint].append(candidate)
    for members in groups.values():
        if len(members) < 2:
            continue
        primary = min(members, key=lambda c: (c.start_installment, c.line))
        reference = DuplicateReference(
            purchase_id=None,
            line=primary.line,
            description=primary.description,
            installment_number=primary.start_installment,
            base_month=primary.base_month,
        )
        for candidate in members:
            if candidate is not primary:
                _flag(candidate, DuplicateOrigin.BATCH, reference)

    stored = Purchase.objects.filter(
        household=household, card=card, is_active=True, kind__in=EXPANDABLE_KINDS
    ).order_by("pk")
    by_fingerprint = {}
    by_shape = defaultdict(list)
    for purchase in stored:
        by_fingerprint.setdefault(purchase_fingerprint(purchase), purchase)
        shape = (
            base_description(purchase.description),
            purchase.installments_count,
            base_statement_month(purchase.statement_month, purchase.start_installment),
        )
        by_shape[shape].append(purchase)

    tolerance = duplicate_tolerance()
    for candidate in valid:
        if candidate.is_duplicate:
            continue
        match = by_fingerprint.get(candidate.fingerprint)
        if match is None:
            shape = (base_description(candidate.description), candidate.installments_count, candidate.base_month)
            for purchase in by_shape.get(shape, []):
                if abs(purchase.total_amount - candidate.total_amount) < tolerance:
                    match = purchase
                    break
        if match is not None:
            _flag(
                candidate,
                DuplicateOrigin.STORE,
                DuplicateReference(
                    purchase_id=match.pk,
                    line=None,
                    description=match.description,
                    installment_number=candidate.start_installment,
                    base_month=candidate.base_month,
                ),
            )

    flagged = sum(1 for candidate in candidates if candidate.is_duplicate)
    if flagged:
        logger.info("Cartão %s: %s de %s linhas marcadas como duplicadas.", card.pk, flagged, len(candidates))
    return candidates


def preview_import(household, card_id, text: str, *, statement_month: date | None = None) -> ImportPreview:
    """
    Parse the pasted lines and flag duplicates without writing anything.

    ``statement_month`` places the starting installment of every line in
    that statement instead of resolving it from each purchase date.
    """
    card = Card.objects.get(pk=card_id, household=household)
    payers = Payer.objects.filter(household=household, is_active=True)
    lines = parse_purchase_lines(text, payers, card.closing_day, get_statement_resolver())
    candidates = build_candidates(lines, statement_month=statement_month)
    check_duplicates(household, card.pk, candidates)
    return ImportPreview(candidates=candidates)


def commit_import(household, card_id, candidates: list[ImportCandidate]) -> ImportResult:
    check_duplicates(household, card_id, candidates)
    result = ImportResult()

    for candidate in candidates:
        if not candidate.is_valid:
            result.failed += 1
            result.details.append(ImportDetail(line=candidate.line, error=candidate.error or "Dados inválidos"))
            continue
        if not candidate.should_import:
            result.skipped += 1
            continue
        try:
            purchase = create_purchase(household, card_id, candidate.to_purchase_input())
        except ValidationError as exc:
            result.failed += 1
            result.details.append(ImportDetail(line=candidate.line, error="; ".join(exc.messages)))
        except DatabaseError as exc:
            logger.exception("Falha ao importar a linha %s no cartão %s", candidate.line, card_id)
            record_error(f"Falha ao importar a linha {candidate.line} no cartão {card_id}", household=household)
            result.failed += 1
            result.details.append(ImportDetail(line=candidate.line, error=str(exc) or "Erro ao criar compra"))
        else:
            result.succeeded += 1
            result.details.append(ImportDetail(line=candidate.line, purchase_id=purchase.pk))

    logger.info(
        "Importação no cartão %s: %s criadas, %s falhas, %s ignoradas.",
        card_id,
        result.succeeded,
        result.failed,
        result.skipped,
    )
    return result
