from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase

from cards.models import Payer
from cards.statement_importer import match_payer, parse_amount, parse_date, parse_purchase_lines


class StatementImporterTests(SimpleTestCase):
    def setUp(self):
        self.payers = [
            Payer(name="Ana Souza", nickname="ana", is_holder=True),
            Payer(name="Mãe", nickname=""),
            Payer(name="Bruno", nickname="bru"),
        ]

    def test_parse_amount_formats(self):
        self.assertEqual(parse_amount("0,16"), Decimal("0.16"))
        self.assertEqual(parse_amount("1.234,56"), Decimal("1234.56"))
        self.assertEqual(parse_amount("1,234.56"), Decimal("1234.56"))
        self.assertEqual(parse_amount("R$ 10"), Decimal("10"))
        self.assertIsNone(parse_amount("abc"))

    def test_parse_date_formats(self):
        self.assertEqual(parse_date("2025-03-10"), date(2025, 3, 10))
        self.assertEqual(parse_date("10/03/2025"), date(2025, 3, 10))
        self.assertEqual(parse_date("10-03-2025"), date(2025, 3, 10))
        self.assertIsNone(parse_date("31/02/2025"))

    def test_match_payer(self):
        self.assertEqual(match_payer("ANA", self.payers).name, "Ana Souza")
        self.assertEqual(match_payer("bruno", self.payers).name, "Bruno")
        self.assertEqual(match_payer("eu", self.payers).name, "Ana Souza")
        self.assertEqual(match_payer("mae", self.payers).name, "Mãe")
        self.assertIsNone(match_payer("carlos", self.payers))

    def test_parse_installment_line(self):
        items = parse_purchase_lines("2025-03-10, Phone - 1/12, 100,00 ana", self.payers, 25)

        self.assertEqual(len(items), 1)
        item = items[0]
        self.assertTrue(item.is_valid)
        self.assertEqual(item.purchase_date, date(2025, 3, 10))
        self.assertEqual(item.description, "Phone - 1/12")
        self.assertEqual(item.amount, Decimal("100.00"))
        self.assertEqual((item.installments_current, item.installments_total), (1, 12))
        self.assertEqual(item.statement_month, date(2025, 3, 1))
        self.assertEqual(item.payer.name, "Ana Souza")

    def test_line_numbers_and_errors(self):
        text = "\n".join(
            [
                "10/03/2025; Mercado 1.234,56 bru",
                "",
                "Mercado, 10,00 ana",
                "2025-03-11, Padaria, 0 ana",
                "2025-03-12, Farmácia, 15,00 carlos",
                "2025-03-12, Sem valor",
            ]
        )
        items = parse_purchase_lines(text, self.payers, 25)

        self.assertEqual([item.line for item in items], [1, 3, 4, 5, 6])
        self.assertTrue(items[0].is_valid)
        self.assertEqual(items[0].amount, Decimal("1234.56"))
        self.assertEqual(items[0].description, "Mercado")
        self.assertEqual(items[1].error, "Data não encontrada no início da linha")
        self.assertTrue(items[2].error.startswith("Valor inválido"))
        self.assertEqual(items[3].error, 'Responsável não encontrado: "carlos"')
        self.assertTrue(items[4].error.startswith("Formato inválido"))

    def test_custom_resolver(self):
        items = parse_purchase_lines(
            "2025-03-10, Phone, 100,00 ana",
            self.payers,
            25,
            resolve_month=lambda purchase_date, closing_day: date(2030, 1, 1),
        )
        self.assertEqual(items[0].statement_month, date(2030, 1, 1))
