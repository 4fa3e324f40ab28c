from datetime import date
from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError
from django.test import TestCase, override_settings

from cards.models import Card, Installment, Payer, Purchase
from cards.services import PurchaseInput, create_purchase, expand_installments
from core.models import Household


class CreatePurchaseTests(TestCase):
    def setUp(self):
        self.household = Household.objects.create(name="Casa", slug="casa")
        self.card = Card.objects.create(household=self.household, name="Visa", closing_day=25, due_day=5)
        self.payer = Payer.objects.create(household=self.household, name="Ana", is_holder=True)

    def _input(self, **overrides):
        data = {
            "description": "Phone",
            "total_amount": Decimal("1200.00"),
            "purchase_date": date(2025, 3, 10),
            "kind": Purchase.Kind.INSTALLMENT,
            "installments_count": 12,
            "statement_month": date(2025, 3, 1),
            "payer_id": self.payer.pk,
        }
        data.update(overrides)
        return PurchaseInput(**data)

    def test_twelve_installments_from_march(self):
        purchase = create_purchase(self.household, self.card.pk, self._input())

        installments = list(purchase.installments.order_by("number"))
        self.assertEqual(len(installments), 12)
        self.assertEqual([i.number for i in installments], list(range(1, 13)))
        self.assertTrue(all(i.amount == Decimal("100.00") for i in installments))
        self.assertEqual(installments[0].statement_month, date(2025, 3, 1))
        self.assertEqual(installments[-1].statement_month, date(2026, 2, 1))
        self.assertFalse(any(i.is_settled for i in installments))
        self.assertEqual(purchase.payer, self.payer)

    def test_start_installment_creates_remaining_only(self):
        purchase = create_purchase(
            self.household,
            self.card.pk,
            self._input(start_installment=3, installments_count=6, total_amount=Decimal("600")),
        )

        numbers = list(purchase.installments.values_list("number", "statement_month"))
        self.assertEqual(numbers[0], (3, date(2025, 3, 1)))
        self.assertEqual(numbers[-1], (6, date(2025, 6, 1)))
        self.assertEqual(len(numbers), 4)

    def test_rounding_drift_is_bounded(self):
        purchase = create_purchase(self.household, self.card.pk, self._input(total_amount=Decimal("100.00"), installments_count=3))

        amounts = list(purchase.installments.values_list("amount", flat=True))
        self.assertEqual(amounts, [Decimal("33.33")] * 3)
        self.assertLessEqual(abs(sum(amounts) - purchase.total_amount), Decimal("0.005") * 3)

    def test_statement_month_resolved_from_closing_day(self):
        purchase = create_purchase(
            self.household,
            self.card.pk,
            self._input(kind=Purchase.Kind.SINGLE, statement_month=None, purchase_date=date(2025, 3, 26)),
        )

        self.assertEqual(purchase.statement_month, date(2025, 4, 1))
        self.assertEqual(purchase.installments_count, 1)
        self.assertEqual(purchase.installments.get().amount, Decimal("1200.00"))

    @override_settings(CARDS_FIXED_MONTHS_AHEAD=4)
    def test_recurring_uses_full_value_each_month(self):
        purchase = create_purchase(
            self.household,
            self.card.pk,
            self._input(kind=Purchase.Kind.RECURRING, description="Streaming", total_amount=Decimal("39.90")),
        )

        installments = list(purchase.installments.all())
        self.assertEqual(len(installments), 4)
        self.assertTrue(all(i.amount == Decimal("39.90") for i in installments))
        self.assertTrue(all(i.recurrence == Installment.Recurrence.FIXED for i in installments))

    def test_validation_rejects_before_writing(self):
        cases = [
            {"total_amount": Decimal("0")},
            {"description": "   "},
            {"start_installment": 13},
            {"installments_count": 1},
            {"kind": "other"},
        ]
        for overrides in cases:
            with self.subTest(overrides=overrides):
                with self.assertRaises(ValidationError):
                    create_purchase(self.household, self.card.pk, self._input(**overrides))
        self.assertEqual(Purchase.objects.count(), 0)
        self.assertEqual(Installment.objects.count(), 0)

    def test_card_from_another_household_is_not_found(self):
        other = Household.objects.create(name="Outra", slug="outra")
        foreign_card = Card.objects.create(household=other, name="Master")

        with self.assertRaises(Card.DoesNotExist):
            create_purchase(self.household, foreign_card.pk, self._input())

    def test_store_failure_rolls_back_purchase(self):
        with mock.patch("cards.services.Installment.objects.bulk_create", side_effect=DatabaseError("boom")):
            with self.assertRaises(DatabaseError):
                create_purchase(self.household, self.card.pk, self._input())

        self.assertEqual(Purchase.objects.count(), 0)
        self.assertEqual(Installment.objects.count(), 0)

    def test_unrelated_integrity_error_propagates(self):
        with mock.patch("cards.services.Installment.objects.bulk_create", side_effect=IntegrityError("batch")):
            with mock.patch("cards.services.Installment.save", side_effect=IntegrityError("row")):
                with self.assertRaises(IntegrityError):
                    create_purchase(self.household, self.card.pk, self._input())

        self.assertEqual(Purchase.objects.count(), 0)


class ExpandInstallmentsTests(TestCase):
    def setUp(self):
        self.household = Household.objects.create(name="Casa", slug="casa")
        self.card = Card.objects.create(household=self.household, name="Visa")
        self.purchase = create_purchase(
            self.household,
            self.card.pk,
            PurchaseInput(
                description="TV",
                total_amount=Decimal("500.00"),
                purchase_date=date(2025, 1, 10),
                kind=Purchase.Kind.INSTALLMENT,
                installments_count=5,
                statement_month=date(2025, 1, 1),
            ),
        )

    def test_existing_numbers_are_benign_conflicts(self):
        self.purchase.installments.filter(number__in=[2, 4]).delete()

        created = expand_installments(self.purchase)

        self.assertEqual(sorted(i.number for i in created), [2, 4])
        self.assertEqual(self.purchase.installments.filter(is_active=True).count(), 5)

    def test_second_expansion_creates_nothing(self):
        self.assertEqual(expand_installments(self.purchase), [])
        self.assertEqual(self.purchase.installments.count(), 5)

    def test_settle_before_marks_past_months(self):
        self.purchase.installments.all().delete()

        expand_installments(self.purchase, settle_before=date(2025, 3, 1))

        settled = dict(self.purchase.installments.values_list("number", "is_settled"))
        self.assertEqual(settled, {1: True, 2: True, 3: False, 4: False, 5: False})
