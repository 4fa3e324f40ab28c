from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase

from cards.fingerprints import (
    base_statement_month,
    build_fingerprint,
    detect_installment,
    normalize_text,
    strip_installment_suffix,
)


class InstallmentMarkerTests(SimpleTestCase):
    def test_strip_known_markers(self):
        self.assertEqual(strip_installment_suffix("Phone - 3/12"), "Phone")
        self.assertEqual(strip_installment_suffix("Notebook (2/10)"), "Notebook")
        self.assertEqual(strip_installment_suffix("Sofa - Parcela 4/8"), "Sofa")
        self.assertEqual(strip_installment_suffix("Mercado 1/2"), "Mercado")
        self.assertEqual(strip_installment_suffix("Farmácia"), "Farmácia")

    def test_detect_installment(self):
        self.assertEqual(detect_installment("Phone - 3/12"), (3, 12, "Phone"))
        self.assertEqual(detect_installment("TV parcela 2/5"), (2, 5, "TV"))

    def test_detect_ignores_impossible_marker(self):
        self.assertEqual(detect_installment("Item - 7/6"), (1, 1, "Item - 7/6"))
        self.assertEqual(detect_installment("Padaria"), (1, 1, "Padaria"))

    def test_normalize_removes_accents_and_spaces(self):
        self.assertEqual(normalize_text("  Pão   de AÇÚCAR "), "pao de acucar")


class FingerprintTests(SimpleTestCase):
    def test_format(self):
        fingerprint = build_fingerprint("Phone - 1/12", 12, Decimal("1200"), date(2025, 3, 1))
        self.assertEqual(fingerprint, "phone|12|1200.00|2025-03")

    def test_same_purchase_from_another_installment(self):
        first = build_fingerprint("Item - 1/6", 6, Decimal("600.00"), date(2025, 1, 1), 1)
        third = build_fingerprint("item - 3/6", 6, Decimal("600.00"), date(2025, 3, 1), 3)
        self.assertEqual(first, third)

    def test_different_base_month_differs(self):
        first = build_fingerprint("Item", 6, Decimal("600.00"), date(2025, 1, 1), 1)
        other = build_fingerprint("Item", 6, Decimal("600.00"), date(2025, 2, 1), 1)
        self.assertNotEqual(first, other)

    def test_base_statement_month(self):
        self.assertEqual(base_statement_month(date(2025, 2, 1), 3), date(2024, 12, 1))
