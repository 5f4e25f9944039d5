import datetime as dt
import unittest

from academydesk.roster.billing import (
    InvoiceNumberer,
    build_invoice,
    check_transition,
    compute_hours,
    compute_total,
    parse_rate,
    resolve_student,
    suggest_students,
)
from academydesk.roster.errors import InvalidTransitionError, ValidationError

STUDENTS = [
    {"id": "s1", "name": "Alice"},
    {"id": "s2", "name": "Alicia Keys"},
    {"id": "s3", "name": "Bob"},
]


class PricingTestCase(unittest.TestCase):
    def test_compute_hours(self) -> None:
        self.assertEqual(compute_hours("09:00", "10:30"), 1.5)
        self.assertEqual(compute_hours("09:00", "09:20"), 0.33)
        self.assertEqual(compute_hours("09:00", "09:10"), 0.17)
        self.assertEqual(compute_hours("17:00:00", "19:00:00"), 2.0)

    def test_incomplete_times_give_zero(self) -> None:
        self.assertEqual(compute_hours("10:00", "09:00"), 0.0)
        self.assertEqual(compute_hours("10:00", "10:00"), 0.0)
        self.assertEqual(compute_hours("", "10:00"), 0.0)
        self.assertEqual(compute_hours("09:00", None), 0.0)
        self.assertEqual(compute_hours("nine", "10:00"), 0.0)
        self.assertEqual(compute_hours("09:00+05:00", "10:00"), 0.0)

    def test_compute_total(self) -> None:
        self.assertEqual(compute_total(2, 50), 100.0)
        self.assertEqual(compute_total(0.33, 45), 14.85)
        self.assertEqual(compute_total(0, 50), 0.0)

    def test_parse_rate(self) -> None:
        self.assertEqual(parse_rate("42.5"), 42.5)
        self.assertEqual(parse_rate(None), 0.0)
        self.assertEqual(parse_rate(""), 0.0)
        with self.assertRaises(ValidationError):
            parse_rate("-1")
        with self.assertRaises(ValidationError):
            parse_rate("fifty")
        for value in ("inf", "-inf", "nan", float("inf")):
            with self.assertRaises(ValidationError):
                parse_rate(value)


class CustomerTestCase(unittest.TestCase):
    def test_resolve_student_exact_match_only(self) -> None:
        self.assertEqual(resolve_student(STUDENTS, "ALICE"), "s1")
        self.assertEqual(resolve_student(STUDENTS, "  bob "), "s3")
        self.assertEqual(resolve_student(STUDENTS, "Ali"), "")
        self.assertEqual(resolve_student([], "Alice"), "")

    def test_suggest_students(self) -> None:
        self.assertEqual([s["id"] for s in suggest_students(STUDENTS, "ali")], ["s1", "s2"])
        self.assertEqual(suggest_students(STUDENTS, ""), [])
        self.assertEqual(len(suggest_students(STUDENTS, "i", limit=1)), 1)


class TransitionTestCase(unittest.TestCase):
    def test_allowed_transitions(self) -> None:
        self.assertTrue(check_transition("pending", "paid"))
        self.assertTrue(check_transition("pending", "cancelled"))
        self.assertFalse(check_transition("pending", "pending"))
        self.assertFalse(check_transition("paid", "paid"))

    def test_terminal_states(self) -> None:
        for current, requested in (("paid", "pending"), ("paid", "cancelled"), ("cancelled", "paid")):
            with self.assertRaises(InvalidTransitionError) as ctx:
                check_transition(current, requested)
            self.assertEqual(ctx.exception.current, current)
        with self.assertRaises(ValidationError):
            check_transition("pending", "void")


class InvoiceTestCase(unittest.TestCase):
    def test_numbers_increase_within_session(self) -> None:
        numberer = InvoiceNumberer(clock=lambda: 1700000000.0)
        self.assertEqual(numberer.next_number(), "INV-1700000000000")
        self.assertEqual(numberer.next_number(), "INV-1700000000001")

    def test_build_invoice(self) -> None:
        booking = {
            "id": "b1",
            "student_id": "s1",
            "student_name": "Alice",
            "date": "2024-01-15",
            "start_time": "09:00",
            "end_time": "11:00",
            "hours": 2.0,
            "rate_per_hour": 50.0,
            "total_amount": 100.0,
            "status": "pending",
        }
        invoice = build_invoice(booking, "INV-1", dt.date(2024, 1, 20))
        self.assertEqual(
            invoice,
            {
                "invoice_number": "INV-1",
                "student_name": "Alice",
                "date": "2024-01-20",
                "amount": 100.0,
                "status": "paid",
                "items": [
                    {
                        "description": "Turf booking on 2024-01-15 (09:00 - 11:00)",
                        "hours": 2.0,
                        "rate": 50.0,
                    }
                ],
            },
        )


if __name__ == "__main__":
    unittest.main()
