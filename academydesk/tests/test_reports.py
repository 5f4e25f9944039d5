import datetime as dt
import unittest
from decimal import Decimal

from academydesk.roster import reports

BOOKINGS = [
    {"status": "paid", "total_amount": 100, "hours": 2},
    {"status": "paid", "total_amount": 50, "hours": 1},
    {"status": "pending", "total_amount": 30, "hours": 0.75},
    {"status": "cancelled", "total_amount": 45, "hours": 0.5},
]


class BookingTotalsTestCase(unittest.TestCase):
    def test_revenue_and_pending(self) -> None:
        self.assertEqual(reports.revenue(BOOKINGS), "150.00")
        self.assertEqual(reports.pending_amount(BOOKINGS), "30.00")

    def test_hours_include_every_status(self) -> None:
        self.assertEqual(reports.total_hours(BOOKINGS), "4.25")

    def test_empty_collections(self) -> None:
        self.assertEqual(reports.revenue([]), "0.00")
        self.assertEqual(reports.total_hours([]), "0.00")

    def test_no_float_drift(self) -> None:
        bookings = [{"status": "paid", "total_amount": 0.1, "hours": 0.1}] * 3
        self.assertEqual(reports.sum_field(bookings, "total_amount"), Decimal("0.3"))
        self.assertEqual(reports.revenue(bookings), "0.30")

    def test_rounds_only_at_the_end(self) -> None:
        bookings = [{"status": "paid", "total_amount": 0.005}] * 2
        self.assertEqual(reports.revenue(bookings), "0.01")

    def test_booking_summary(self) -> None:
        summary = reports.booking_summary(BOOKINGS)
        self.assertEqual(summary["count"], 4)
        self.assertEqual(summary["revenue"], "150.00")
        self.assertEqual(summary["pending_amount"], "30.00")
        self.assertEqual(summary["total_hours"], "4.25")


class InvoiceTotalsTestCase(unittest.TestCase):
    def test_totals_by_status(self) -> None:
        invoices = [
            {"status": "paid", "amount": 100},
            {"status": "paid", "amount": 20.5},
            {"status": "overdue", "amount": 35},
        ]
        self.assertEqual(
            reports.invoice_totals(invoices),
            {"paid": "120.50", "pending": "0.00", "overdue": "35.00"},
        )
        self.assertEqual(reports.invoice_summary(invoices)["count"], 3)


class RegistrationTestCase(unittest.TestCase):
    def test_monthly_registrations(self) -> None:
        students = [
            {"registration_date": "2024-03-01"},
            {"registration_date": "2024-03-31"},
            {"registration_date": "2024-02-29"},
            {"registration_date": "2023-03-15"},
            {},
        ]
        self.assertEqual(reports.monthly_registrations(students, dt.date(2024, 3, 10)), 2)


if __name__ == "__main__":
    unittest.main()
