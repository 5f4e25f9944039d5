"""Dashboard totals over booking, invoice and student collections.

All sums accumulate as :class:`~decimal.Decimal` and are rounded only in
:func:`format_amount`, so many small amounts never drift.
"""

from __future__ import annotations

import datetime as dt
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from .billing import INVOICE_STATUSES

CENT = Decimal("0.01")


def _decimal(value: float | int | str | None) -> Decimal:
    if value in (None, ""):
        return Decimal(0)
    return Decimal(str(value))


def format_amount(value: Decimal) -> str:
    return str(value.quantize(CENT, rounding=ROUND_HALF_UP))


def sum_field(records: Iterable[dict], name: str) -> Decimal:
    return sum((_decimal(record.get(name)) for record in records), Decimal(0))


def revenue(bookings: Sequence[dict]) -> str:
    return format_amount(sum_field((b for b in bookings if b.get("status") == "paid"), "total_amount"))


def pending_amount(bookings: Sequence[dict]) -> str:
    return format_amount(
        sum_field((b for b in bookings if b.get("status") == "pending"), "total_amount")
    )


def total_hours(bookings: Sequence[dict]) -> str:
    return format_amount(sum_field(bookings, "hours"))


def invoice_totals(invoices: Sequence[dict]) -> dict[str, str]:
    totals = {status: Decimal(0) for status in INVOICE_STATUSES}
    for invoice in invoices:
        status = invoice.get("status")
        if status in totals:
            totals[status] += _decimal(invoice.get("amount"))
    return {status: format_amount(amount) for status, amount in totals.items()}


def monthly_registrations(students: Sequence[dict], today: dt.date | None = None) -> int:
    """Count students registered in the calendar month of ``today``."""

    today = today or dt.date.today()
    prefix = f"{today.year:04d}-{today.month:02d}"
    return sum(1 for student in students if (student.get("registration_date") or "").startswith(prefix))


def booking_summary(bookings: Sequence[dict]) -> dict:
    return {
        "count": len(bookings),
        "revenue": revenue(bookings),
        "pending_amount": pending_amount(bookings),
        "total_hours": total_hours(bookings),
    }


def invoice_summary(invoices: Sequence[dict]) -> dict:
    return {
        "count": len(invoices),
        "totals": invoice_totals(invoices),
    }
