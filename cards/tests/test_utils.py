from decimal import Decimal

from django.test import SimpleTestCase

from cards.utils import calculate_installment_values, installment_value


class CalculateInstallmentValuesTests(SimpleTestCase):
    def test_avista(self):
        total, parcela, regra = calculate_installment_values(Decimal("100"), 1)
        self.assertEqual(total, Decimal("100.00"))
        self.assertEqual(parcela, Decimal("100.00"))
        self.assertEqual(regra, "avista")

    def test_parcela_informada(self):
        total, parcela, regra = calculate_installment_values(Decimal("33.33"), 3)
        self.assertEqual(parcela, Decimal("33.33"))
        self.assertEqual(total, Decimal("99.99"))
        self.assertEqual(regra, "parcela_informada")

    def test_total_informado(self):
        total, parcela, regra = calculate_installment_values(
            Decimal("33.33"),
            3,
            purchase_total=Decimal("100"),
        )
        self.assertEqual(total, Decimal("100.00"))
        self.assertEqual(parcela, Decimal("33.33"))
        self.assertEqual(regra, "total_informado")


class InstallmentValueTests(SimpleTestCase):
    def test_rounds_half_up_without_redistribution(self):
        self.assertEqual(installment_value(Decimal("100.00"), 3), Decimal("33.33"))
        self.assertEqual(installment_value(Decimal("0.05"), 2), Decimal("0.03"))

    def test_rejects_non_positive_count(self):
        with self.assertRaises(ValueError):
            installment_value(Decimal("10"), 0)
