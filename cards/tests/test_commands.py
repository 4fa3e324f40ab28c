from datetime import date
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from cards.models import Card, Installment, Payer, Purchase, StatementAdvance
from cards.services import PurchaseInput, create_purchase
from core.models import Household


class CardCommandsTests(TestCase):
    def setUp(self):
        self.household = Household.objects.create(name="Casa", slug="casa")
        self.card = Card.objects.create(household=self.household, name="Visa", closing_day=25, due_day=5)
        Payer.objects.create(household=self.household, name="Ana", is_holder=True)

    def _call(self, *args, **kwargs):
        out = StringIO()
        call_command(*args, stdout=out, stderr=StringIO(), **kwargs)
        return out.getvalue()

    def _purchase(self, description="TV", total="300.00", count=3, month=date(2025, 3, 1)):
        return create_purchase(
            self.household,
            self.card.pk,
            PurchaseInput(
                description=description,
                total_amount=Decimal(total),
                purchase_date=month,
                kind=Purchase.Kind.INSTALLMENT if count > 1 else Purchase.Kind.SINGLE,
                installments_count=count,
                statement_month=month,
            ),
        )

    def test_import_dry_run_writes_nothing(self):
        output = self._call(
            "import_card_purchases",
            household="casa",
            card=self.card.pk,
            text="2025-03-10, Phone - 1/12, 100,00 eu",
        )

        self.assertIn("Importar: 1 | Duplicadas: 0 | Inválidas: 0", output)
        self.assertEqual(Purchase.objects.count(), 0)

    def test_import_commit_and_force(self):
        text = "2025-03-10, Phone - 1/12, 100,00 eu"
        self._call("import_card_purchases", household="casa", card=self.card.pk, text=text, commit=True)
        output = self._call(
            "import_card_purchases", household="casa", card=self.card.pk, text=text, commit=True, force_lines="1"
        )

        self.assertIn("[forçada]", output)
        self.assertEqual(Purchase.objects.count(), 2)
        self.assertEqual(Installment.objects.count(), 24)

    def test_import_requires_text_or_file(self):
        with self.assertRaises(CommandError):
            self._call("import_card_purchases", household="casa", card=self.card.pk)

    def test_unknown_household(self):
        with self.assertRaises(CommandError):
            self._call("settle_statement", household="nada", card=self.card.pk, month="2025-03")

    def test_repair_installments(self):
        purchase = self._purchase()
        purchase.installments.filter(number=2).delete()

        output = self._call("repair_installments", household="casa", date="2025-01-01")

        self.assertIn("Parcelas regeneradas: 1", output)
        self.assertEqual(purchase.installments.count(), 3)

    def test_settle_statement(self):
        self._purchase()

        output = self._call("settle_statement", household="casa", card=self.card.pk, month="2025-03")

        self.assertIn("Fechamento: 25/03/2025 | Vencimento: 05/04/2025", output)
        self.assertIn("1 parcelas marcadas como pagas.", output)

    def test_advance_and_undo(self):
        self._purchase("Mercado", "80.00", 1)
        self._purchase("Farmácia", "90.00", 1)

        output = self._call(
            "advance_statement", household="casa", card=self.card.pk, month="2025-03", amount="100", settle=True
        )
        advance = StatementAdvance.objects.get()
        self.assertIn("1 parcelas quitadas", output)

        output = self._call("undo_statement_advance", household="casa", advance=advance.pk)
        self.assertIn("Parcelas reabertas: 1", output)
        self.assertFalse(Installment.objects.filter(is_settled=True).exists())

    def test_advance_over_pending_is_a_command_error(self):
        self._purchase("Mercado", "80.00", 1)
        with self.assertRaises(CommandError):
            self._call("advance_statement", household="casa", card=self.card.pk, month="2025-03", amount="81")

    def test_extend_fixed_purchases(self):
        fixed = create_purchase(
            self.household,
            self.card.pk,
            PurchaseInput(
                description="Streaming",
                total_amount=Decimal("39.90"),
                purchase_date=date(2000, 1, 1),
                kind=Purchase.Kind.RECURRING,
                months_ahead=2,
                statement_month=date(2000, 1, 1),
            ),
        )
        distant = create_purchase(
            self.household,
            self.card.pk,
            PurchaseInput(
                description="Seguro",
                total_amount=Decimal("80.00"),
                purchase_date=date(2100, 1, 1),
                kind=Purchase.Kind.RECURRING,
                months_ahead=2,
                statement_month=date(2100, 1, 1),
            ),
        )

        output = self._call("extend_fixed_purchases", household="casa", months=3)

        self.assertIn("Despesas estendidas: 1. Parcelas criadas: 3", output)
        self.assertEqual(fixed.installments.count(), 5)
        self.assertEqual(distant.installments.count(), 2)
