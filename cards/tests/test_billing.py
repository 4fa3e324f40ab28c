from datetime import date

from django.test import SimpleTestCase, override_settings

from cards.billing import (
    add_months,
    get_due_date,
    get_statement_resolver,
    get_statement_window,
    months_between,
    parse_month,
    resolve_statement_month,
)


def always_january(purchase_date, closing_day):
    return date(purchase_date.year, 1, 1)


class StatementMonthTests(SimpleTestCase):
    def test_purchase_before_closing_day_stays_in_month(self):
        self.assertEqual(resolve_statement_month(date(2025, 2, 4), 5), date(2025, 2, 1))

    def test_purchase_on_closing_day_goes_to_next_month(self):
        self.assertEqual(resolve_statement_month(date(2025, 2, 5), 5), date(2025, 3, 1))

    def test_december_rolls_over_year(self):
        self.assertEqual(resolve_statement_month(date(2025, 12, 28), 25), date(2026, 1, 1))

    def test_closing_day_clamped_to_short_month(self):
        self.assertEqual(resolve_statement_month(date(2025, 2, 27), 31), date(2025, 2, 1))
        self.assertEqual(resolve_statement_month(date(2025, 2, 28), 31), date(2025, 3, 1))

    @override_settings(CARDS_STATEMENT_RESOLVER="cards.tests.test_billing.always_january")
    def test_resolver_is_pluggable(self):
        resolver = get_statement_resolver()
        self.assertIs(resolver, always_january)


class MonthArithmeticTests(SimpleTestCase):
    def test_add_months_forward_and_back(self):
        self.assertEqual(add_months(date(2025, 11, 1), 3), date(2026, 2, 1))
        self.assertEqual(add_months(date(2025, 1, 1), -1), date(2024, 12, 1))
        self.assertEqual(add_months(date(2025, 3, 1), 0), date(2025, 3, 1))

    def test_months_between(self):
        self.assertEqual(months_between(date(2024, 11, 1), date(2025, 2, 1)), 3)
        self.assertEqual(months_between(date(2025, 2, 1), date(2024, 11, 1)), -3)

    def test_parse_month(self):
        self.assertEqual(parse_month("2025-03"), date(2025, 3, 1))
        self.assertEqual(parse_month("2025-03-17"), date(2025, 3, 1))
        with self.assertRaises(ValueError):
            parse_month("03/2025")
        with self.assertRaises(ValueError):
            parse_month("2025-13")


class StatementWindowTests(SimpleTestCase):
    def test_window_between_closings(self):
        closing, start, end = get_statement_window(date(2025, 3, 1), 25)
        self.assertEqual(closing, date(2025, 3, 25))
        self.assertEqual(start, date(2025, 2, 26))
        self.assertEqual(end, date(2025, 3, 25))

    def test_due_date_after_closing_same_month(self):
        self.assertEqual(get_due_date(date(2025, 3, 1), 28, 20), date(2025, 3, 28))

    def test_due_date_before_closing_next_month(self):
        self.assertEqual(get_due_date(date(2025, 3, 1), 5, 25), date(2025, 4, 5))
