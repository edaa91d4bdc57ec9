from __future__ import annotations

from datetime import date, datetime, timezone as dt_timezone

from django.test import SimpleTestCase

from core.recurrence import add_months, first_on_or_after, next_due_date


class NextDueDateTests(SimpleTestCase):
    def test_fixed_steps(self):
        d = date(2026, 3, 10)
        self.assertEqual(next_due_date("daily", d), date(2026, 3, 11))
        self.assertEqual(next_due_date("weekly", d), date(2026, 3, 17))
        self.assertEqual(next_due_date("monthly", d), date(2026, 4, 10))
        self.assertEqual(next_due_date("quarterly", d), date(2026, 6, 10))
        self.assertEqual(next_due_date("yearly", d), date(2027, 3, 10))

    def test_month_end_clamping(self):
        self.assertEqual(next_due_date("monthly", date(2024, 1, 31)), date(2024, 2, 29))
        self.assertEqual(next_due_date("monthly", date(2023, 1, 31)), date(2023, 2, 28))
        self.assertEqual(next_due_date("quarterly", date(2025, 11, 30)), date(2026, 2, 28))
        self.assertEqual(next_due_date("yearly", date(2024, 2, 29)), date(2025, 2, 28))

    def test_year_rollover(self):
        self.assertEqual(next_due_date("monthly", date(2025, 12, 15)), date(2026, 1, 15))
        self.assertEqual(add_months(date(2026, 1, 15), -1), date(2025, 12, 15))

    def test_datetime_keeps_time_of_day(self):
        dt = datetime(2024, 1, 31, 9, 30, tzinfo=dt_timezone.utc)
        self.assertEqual(next_due_date("monthly", dt), datetime(2024, 2, 29, 9, 30, tzinfo=dt_timezone.utc))

    def test_unknown_kind(self):
        with self.assertRaises(ValueError):
            next_due_date("fortnightly", date(2026, 1, 1))

    def test_first_on_or_after(self):
        self.assertEqual(first_on_or_after("weekly", date(2026, 1, 1), date(2026, 1, 20)), date(2026, 1, 22))
        self.assertEqual(first_on_or_after("weekly", date(2026, 2, 1), date(2026, 1, 20)), date(2026, 2, 1))
