# billing/tests/test_calculator.py

from __future__ import annotations

from datetime import date, datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal

from django.test import SimpleTestCase

from billing.services import calculator


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=dt_timezone.utc)


class MoneyTests(SimpleTestCase):
    def test_quantizes_half_up(self):
        self.assertEqual(calculator.money("10.005"), Decimal("10.01"))
        self.assertEqual(calculator.money(7), Decimal("7.00"))

    def test_blank_is_zero(self):
        self.assertEqual(calculator.money(None), Decimal("0.00"))
        self.assertEqual(calculator.money(""), Decimal("0.00"))

    def test_garbage_raises(self):
        with self.assertRaises(ValueError):
            calculator.money("abc")

    def test_outstanding_never_negative(self):
        self.assertEqual(calculator.outstanding("100", "150"), Decimal("0.00"))
        self.assertEqual(calculator.outstanding("100", "40.50"), Decimal("59.50"))


class LateFeeTests(SimpleTestCase):
    """TIME_ZONE is UTC under test settings."""

    def test_zero_through_end_of_grace_day(self):
        self.assertEqual(calculator.late_fee(_utc(2025, 1, 3, 12), 2025, 1), Decimal("0.00"))
        self.assertEqual(
            calculator.late_fee(_utc(2025, 1, 5, 23, 59, 59, 999999), 2025, 1), Decimal("0.00")
        )

    def test_any_fraction_of_a_day_is_a_full_day(self):
        self.assertEqual(calculator.late_fee(_utc(2025, 1, 6, 0, 0, 1), 2025, 1), Decimal("50.00"))
        self.assertEqual(calculator.late_fee(_utc(2025, 1, 7, 12), 2025, 1), Decimal("100.00"))

    def test_custom_grace_and_per_diem(self):
        fee = calculator.late_fee(_utc(2025, 1, 12, 8), 2025, 1, grace_last_day=10, per_diem_fee="25")
        self.assertEqual(fee, Decimal("50.00"))

    def test_naive_eval_at_is_treated_as_local(self):
        self.assertEqual(calculator.late_fee(datetime(2025, 1, 6, 10), 2025, 1), Decimal("50.00"))

    def test_monotonic_in_eval_time(self):
        at = _utc(2025, 1, 1)
        previous = Decimal("0.00")
        for _ in range(24 * 40):
            fee = calculator.late_fee(at, 2025, 1)
            self.assertGreaterEqual(fee, previous)
            previous = fee
            at += timedelta(hours=1)

    def test_grace_day_clamped_to_month_length(self):
        end = calculator.grace_end(2025, 2, 31)
        self.assertEqual(end.date(), date(2025, 2, 28))
        self.assertEqual(calculator.late_fee(_utc(2025, 2, 28, 22), 2025, 2, 31), Decimal("0.00"))
        self.assertEqual(calculator.late_fee(_utc(2025, 3, 1, 1), 2025, 2, 31), Decimal("50.00"))


class FirstPeriodTests(SimpleTestCase):
    def test_move_in_day_9_is_prorated_and_due_on_move_in(self):
        move_in = date(2025, 3, 9)
        quote = calculator.first_period_base(move_in, Decimal("22000"))

        # 22000 * 23 / 31 = 16322.58 -> whole unit
        self.assertTrue(quote.is_prorated)
        self.assertEqual(quote.days_staying, 23)
        self.assertEqual(quote.days_in_month, 31)
        self.assertEqual(quote.base_amount, Decimal("16323.00"))
        self.assertEqual(quote.due_date, move_in)
        self.assertEqual(quote.window_start, move_in)
        self.assertEqual(quote.window_end, date(2025, 3, 31))

    def test_move_in_up_to_day_5_is_full_rent(self):
        for day in range(1, 6):
            quote = calculator.first_period_base(date(2025, 4, day), "18000", due_day=3)
            self.assertFalse(quote.is_prorated)
            self.assertEqual(quote.base_amount, Decimal("18000.00"))
            self.assertEqual(quote.due_date, date(2025, 4, 3))

    def test_last_day_of_month_is_one_day(self):
        quote = calculator.first_period_base(date(2024, 2, 29), "29000")
        self.assertEqual(quote.days_staying, 1)
        self.assertEqual(quote.base_amount, Decimal("1000.00"))

    def test_one_time_charges_total(self):
        total = calculator.one_time_charges_total(
            "5000", "500", [{"description": "Locker", "amount": "250.50"}, "junk"]
        )
        self.assertEqual(total, Decimal("5750.50"))


class DueDateTests(SimpleTestCase):
    def test_invoice_due_next_month(self):
        self.assertEqual(calculator.default_invoice_due_date(2025, 1), date(2025, 2, 10))
        self.assertEqual(calculator.default_invoice_due_date(2025, 12), date(2026, 1, 10))

    def test_standard_due_day_clamped(self):
        self.assertEqual(calculator.standard_due_date(2025, 2, 30), date(2025, 2, 28))

    def test_billing_window_spans_month(self):
        self.assertEqual(calculator.billing_window(2024, 2), (date(2024, 2, 1), date(2024, 2, 29)))


class StatusDerivationTests(SimpleTestCase):
    def test_overdue_when_unpaid_past_due(self):
        status = calculator.derive_invoice_status(
            Decimal("2500"), Decimal("0"), date(2024, 3, 10), _utc(2024, 3, 15)
        )
        self.assertEqual(status, calculator.INVOICE_OVERDUE)

    def test_invoice_status_for_every_payment_level(self):
        due = date(2025, 1, 10)
        before, after = _utc(2025, 1, 1), _utc(2025, 2, 1)
        cases = [
            ("0", before, calculator.INVOICE_PENDING),
            ("0", after, calculator.INVOICE_OVERDUE),
            ("1", after, calculator.INVOICE_PARTIALLY_PAID),
            ("999.99", before, calculator.INVOICE_PARTIALLY_PAID),
            ("1000", after, calculator.INVOICE_PAID),
            ("1200", before, calculator.INVOICE_PAID),
        ]
        for paid, now, expected in cases:
            with self.subTest(paid=paid, now=now):
                self.assertEqual(
                    calculator.derive_invoice_status("1000", paid, due, now), expected
                )

    def test_period_status(self):
        derive = calculator.derive_period_status
        self.assertEqual(derive("100", "100"), calculator.PERIOD_PAID)
        self.assertEqual(derive("100", "40"), calculator.PERIOD_PENDING)
        self.assertEqual(derive("100", "0", latest_gateway_failed=True), calculator.PERIOD_FAILED)
        self.assertEqual(
            derive("100", "0", has_pending_attempt=True, latest_gateway_failed=True),
            calculator.PERIOD_PENDING,
        )
        self.assertEqual(
            derive("100", "100", current_status=calculator.PERIOD_REFUNDED),
            calculator.PERIOD_REFUNDED,
        )
