from __future__ import annotations

import unittest
from datetime import datetime

from formatting import (
    fmt_currency,
    fmt_datetime,
    fmt_quantity,
    normalize_url,
    safe_name,
    suggest_filename,
    to_pt,
)


class TestNumbers(unittest.TestCase):
    def test_currency_has_two_decimals_and_grouping(self) -> None:
        self.assertEqual(fmt_currency(1234.5), "£1,234.50")
        self.assertEqual(fmt_currency(0), "£0.00")
        self.assertEqual(fmt_currency(-2, "$"), "-$2.00")
        self.assertEqual(fmt_currency("3.456", ""), "3.46")

    def test_currency_passes_garbage_through(self) -> None:
        self.assertEqual(fmt_currency("n/a"), "n/a")

    def test_quantity_has_two_decimals(self) -> None:
        self.assertEqual(fmt_quantity(3), "3.00")
        self.assertEqual(fmt_quantity(1500.125), "1,500.12")

    def test_units(self) -> None:
        self.assertAlmostEqual(to_pt("10mm"), 28.346)
        self.assertEqual(to_pt("1in"), 72.0)
        self.assertEqual(to_pt("12"), 12.0)
        self.assertEqual(to_pt(""), 0.0)


class TestDates(unittest.TestCase):
    def test_fixed_day_month_year_time(self) -> None:
        self.assertEqual(fmt_datetime(datetime(2026, 1, 8, 9, 36)), "08 Jan 2026, 09:36")
        self.assertEqual(fmt_datetime(datetime(2025, 12, 31, 23, 5)), "31 Dec 2025, 23:05")

    def test_iso_strings_are_parsed(self) -> None:
        self.assertEqual(fmt_datetime("2026-03-02T14:00:00"), "02 Mar 2026, 14:00")

    def test_unparseable_and_missing(self) -> None:
        self.assertEqual(fmt_datetime("yesterday"), "yesterday")
        self.assertEqual(fmt_datetime(None), "-")


class TestLinksAndNames(unittest.TestCase):
    def test_normalize_url(self) -> None:
        self.assertEqual(normalize_url("https://a.example/x"), "https://a.example/x")
        self.assertEqual(normalize_url(" www.example.com "), "https://www.example.com")
        self.assertIsNone(normalize_url("ftp://example.com"))
        self.assertIsNone(normalize_url("just text"))
        self.assertIsNone(normalize_url(None))

    def test_safe_name_replaces_unsafe_characters(self) -> None:
        self.assertEqual(safe_name('ORD 10/42: "rush"'), "ORD_10-42-_-rush-")
        self.assertEqual(len(safe_name("x" * 200)), 60)

    def test_suggest_filename(self) -> None:
        self.assertEqual(suggest_filename("Delivery Receipt", "ORD 10/42"),
                         "delivery_receipt_ORD_10-42.pdf")
        self.assertEqual(suggest_filename("Expenses Report"), "expenses_report.pdf")
        self.assertEqual(suggest_filename("   "), "document.pdf")


if __name__ == "__main__":
    unittest.main()
