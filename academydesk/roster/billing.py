"""Booking pricing, status rules and invoice generation."""

from __future__ import annotations

import datetime as dt
import math
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Sequence

from .errors import InvalidTransitionError, ValidationError

BOOKING_STATUSES = ("pending", "paid", "cancelled")
INVOICE_STATUSES = ("paid", "pending", "overdue")

ALLOWED_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "pending": ("paid", "cancelled"),
    "paid": (),
    "cancelled": (),
}

CENT = Decimal("0.01")


def _parse_time(value: str | None) -> dt.datetime | None:
    if not value:
        return None
    try:
        parsed = dt.time.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        return None
    return dt.datetime.combine(dt.date(2000, 1, 1), parsed)


def compute_hours(start_time: str | None, end_time: str | None) -> float:
    """Return the booked hours between two ``HH:MM`` strings.

    Missing, unparsable or reversed times give ``0.0`` rather than an
    error; the form is simply not complete yet.
    """

    start = _parse_time(start_time)
    end = _parse_time(end_time)
    if start is None or end is None or end <= start:
        return 0.0
    seconds = Decimal((end - start).total_seconds())
    return float((seconds / Decimal(3600)).quantize(CENT, rounding=ROUND_HALF_UP))


def compute_total(hours: float, rate_per_hour: float) -> float:
    total = Decimal(str(hours)) * Decimal(str(rate_per_hour))
    return float(total.quantize(CENT, rounding=ROUND_HALF_UP))


def parse_rate(value: float | str | None) -> float:
    if value is None or value == "":
        return 0.0
    try:
        rate = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid rate per hour: {value!r}") from exc
    if not math.isfinite(rate):
        raise ValidationError(f"Invalid rate per hour: {value!r}")
    if rate < 0:
        raise ValidationError("Rate per hour cannot be negative")
    return rate


def resolve_student(students: Sequence[dict], name: str) -> str:
    """Return the id of the student called ``name``, or ``""`` for a guest."""

    wanted = name.strip().lower()
    for student in students:
        if (student.get("name") or "").strip().lower() == wanted:
            return student["id"]
    return ""


def suggest_students(students: Sequence[dict], text: str, limit: int = 5) -> list[dict]:
    """Return students whose name contains ``text`` for the name picker."""

    needle = text.strip().lower()
    if not needle:
        return []
    matches = [s for s in students if needle in (s.get("name") or "").lower()]
    return matches[:limit]


def check_transition(current: str, requested: str) -> bool:
    """Return ``True`` if the status must be written, ``False`` for a no-op."""

    if requested not in BOOKING_STATUSES:
        raise ValidationError(f"Unknown booking status: {requested}")
    if current == requested:
        return False
    if requested not in ALLOWED_TRANSITIONS.get(current, ()):
        raise InvalidTransitionError(current, requested)
    return True


class InvoiceNumberer:
    """Issue ``INV-<milliseconds>`` numbers, strictly increasing per session."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0

    def next_number(self) -> str:
        stamp = int(self._clock() * 1000)
        if stamp <= self._last:
            stamp = self._last + 1
        self._last = stamp
        return f"INV-{stamp}"


def describe_booking(booking: dict) -> str:
    return (
        f"Turf booking on {booking['date']} "
        f"({booking['start_time']} - {booking['end_time']})"
    )


def build_invoice(booking: dict, invoice_number: str, issue_date: dt.date) -> dict:
    """Snapshot a paid booking into a new invoice record."""

    return {
        "invoice_number": invoice_number,
        "student_name": booking["student_name"],
        "date": issue_date.isoformat(),
        "amount": booking["total_amount"],
        "status": "paid",
        "items": [
            {
                "description": describe_booking(booking),
                "hours": booking["hours"],
                "rate": booking["rate_per_hour"],
            }
        ],
    }
