"""Core orchestration logic for the AcademyDesk platform."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Callable

from . import reports
from .attendance import ATTENDANCE_STATUSES, DaySummary, day_key, derive_day, find_record
from .billing import (
    INVOICE_STATUSES,
    InvoiceNumberer,
    build_invoice,
    check_transition,
    compute_hours,
    compute_total,
    parse_rate,
    resolve_student,
    suggest_students,
)
from .errors import DataUnavailableError, PartialWorkflowError, RecordNotFoundError, ValidationError
from .listview import SEARCH_FIELDS, ListPage, ListViewState, view_state
from .store import ATTENDANCE, BOOKINGS, COLLECTIONS, INVOICES, STUDENTS, EntityStore

logger = logging.getLogger(__name__)

BATCHES = (
    "Dev 4to5pm below 6 yrs",
    "Dev 5to6pm below 8 yrs",
    "Dev 6to7pm below 10 yrs",
    "Dev 7to8pm Above 12 yrs",
    "Beginner 4to5pm below 6 yrs",
    "Beginner 5to6pm below 8 yrs",
    "Beginner 6to7pm below 10 yrs",
    "Beginner 7to8pm Above 12 yrs",
)

STUDENT_FIELDS = ("name", "address", "phone", "batch", "registration_date", "age")


class RosterSystem:
    """High level façade over the live record collections.

    The façade keeps the latest snapshot pushed by the store for each
    collection and never edits it locally: a mutation is written to the
    store, and the store's next snapshot is what readers see.
    """

    def __init__(
        self,
        store: EntityStore | None = None,
        *,
        numberer: InvoiceNumberer | None = None,
        today: Callable[[], dt.date] = dt.date.today,
    ) -> None:
        self.store = store if store is not None else EntityStore()
        self.numberer = numberer or InvoiceNumberer()
        self._today = today
        self._snapshots: dict[str, list[dict]] = {}
        self._errors: dict[str, Exception] = {}
        self._unsubscribers: dict[str, Callable[[], None]] = {}
        for collection in COLLECTIONS:
            self._subscribe(collection)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    def _subscribe(self, collection: str) -> None:
        def on_snapshot(records: list[dict]) -> None:
            self._snapshots[collection] = records
            self._errors.pop(collection, None)

        def on_error(exc: Exception) -> None:
            logger.error("Lost %s feed", collection, exc_info=exc)
            self._errors[collection] = exc
            self._snapshots.pop(collection, None)
            self._unsubscribers.pop(collection, None)

        unsubscribe = self.store.subscribe(collection, on_snapshot, on_error)
        if collection not in self._errors:
            self._unsubscribers[collection] = unsubscribe

    def collection(self, name: str) -> list[dict]:
        """Return the latest snapshot of ``name`` or raise if it is unavailable."""

        if name in self._errors or name not in self._snapshots:
            raise DataUnavailableError(name, self._errors.get(name))
        return self._snapshots[name]

    def is_available(self, name: str) -> bool:
        return name in self._snapshots and name not in self._errors

    def reload(self) -> None:
        """Resubscribe every collection whose feed has failed."""

        for collection in COLLECTIONS:
            if collection not in self._unsubscribers:
                logger.info("Resubscribing to %s", collection)
                self._subscribe(collection)

    def _find(self, collection: str, record_id: str) -> dict:
        for record in self.collection(collection):
            if record["id"] == record_id:
                return record
        raise RecordNotFoundError(collection, record_id)

    def page(self, list_name: str, state: ListViewState) -> ListPage:
        """Return one page of a list; the attendance sheet pages students."""

        source = STUDENTS if list_name == "attendance" else list_name
        return view_state(self.collection(source), state, SEARCH_FIELDS[list_name])

    # ------------------------------------------------------------------
    # Students
    # ------------------------------------------------------------------
    def _clean_student(self, data: dict[str, Any]) -> dict[str, Any]:
        record = {
            key: (data[key] or "").strip()
            for key in STUDENT_FIELDS
            if key in data and key != "age"
        }
        if "age" in data:
            record["age"] = self._parse_age(data["age"])
        if "batch" in record and record["batch"] not in BATCHES:
            raise ValidationError(f"Unknown batch: {record['batch']}")
        if "name" in record and not record["name"]:
            raise ValidationError("Student name is required")
        return record

    @staticmethod
    def _parse_age(value: int | str | None) -> int:
        if value is None or value == "":
            return 0
        try:
            age = int(value)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid age: {value!r}") from exc
        if age < 0:
            raise ValidationError("Age cannot be negative")
        return age

    def add_student(
        self,
        *,
        name: str,
        batch: str,
        address: str = "",
        phone: str = "",
        age: int | str | None = 0,
        registration_date: str | None = None,
    ) -> str:
        record = self._clean_student(
            {
                "name": name,
                "address": address,
                "phone": phone,
                "batch": batch,
                "registration_date": registration_date or self._today().isoformat(),
                "age": age,
            }
        )
        return self.store.create(STUDENTS, record)

    def update_student(self, student_id: str, **changes: Any) -> None:
        # Names copied onto attendance, bookings and invoices stay as they were.
        self.store.update(STUDENTS, student_id, self._clean_student(changes))

    def delete_student(self, student_id: str) -> None:
        self.store.delete(STUDENTS, student_id)

    def get_student(self, student_id: str) -> dict:
        return self._find(STUDENTS, student_id)

    # ------------------------------------------------------------------
    # Attendance
    # ------------------------------------------------------------------
    def mark_attendance(
        self,
        student_id: str,
        student_name: str,
        date: dt.date | str,
        status: str,
        notes: str | None = None,
    ) -> str:
        """Record ``status`` for a student on ``date``, updating any existing entry."""

        if status not in ATTENDANCE_STATUSES:
            raise ValidationError(f"Unknown attendance status: {status}")
        key = day_key(date)
        existing = find_record(self.collection(ATTENDANCE), student_id, key)
        if existing:
            changes: dict[str, Any] = {"status": status}
            if notes is not None:
                changes["notes"] = notes
            self.store.update(ATTENDANCE, existing["id"], changes)
            return existing["id"]
        record: dict[str, Any] = {
            "student_id": student_id,
            "student_name": student_name,
            "date": key,
            "status": status,
        }
        if notes:
            record["notes"] = notes
        return self.store.create(ATTENDANCE, record)

    def attendance_day(self, date: dt.date | str | None = None) -> DaySummary:
        return derive_day(self.collection(ATTENDANCE), date or self._today())

    # ------------------------------------------------------------------
    # Booking lifecycle
    # ------------------------------------------------------------------
    def suggest_customers(self, text: str, limit: int = 5) -> list[dict]:
        return suggest_students(self.collection(STUDENTS), text, limit)

    def save_booking(
        self,
        *,
        customer_name: str,
        date: str | None,
        start_time: str | None,
        end_time: str | None,
        rate_per_hour: float | str | None,
        booking_id: str | None = None,
    ) -> str | None:
        """Create or update a booking; returns ``None`` when no name was entered."""

        name = (customer_name or "").strip()
        if not name:
            return None
        rate = parse_rate(rate_per_hour)
        hours = compute_hours(start_time, end_time)
        record = {
            "student_id": resolve_student(self.collection(STUDENTS), name),
            "student_name": name,
            "date": date or self._today().isoformat(),
            "start_time": start_time or "",
            "end_time": end_time or "",
            "hours": hours,
            "rate_per_hour": rate,
            "total_amount": compute_total(hours, rate),
        }
        if booking_id:
            self.store.update(BOOKINGS, booking_id, record)
            return booking_id
        record["status"] = "pending"
        return self.store.create(BOOKINGS, record)

    def update_booking_status(self, booking_id: str, status: str) -> dict | None:
        """Apply a status change; returns the invoice created by a payment."""

        booking = self._find(BOOKINGS, booking_id)
        if not check_transition(booking["status"], status):
            return None
        self.store.update(BOOKINGS, booking_id, {"status": status})
        if status != "paid":
            return None
        invoice = build_invoice(booking, self.numberer.next_number(), self._today())
        try:
            invoice["id"] = self.store.create(INVOICES, invoice)
        except Exception as exc:
            logger.warning("Booking %s paid without an invoice", booking_id, exc_info=exc)
            raise PartialWorkflowError(booking_id, exc) from exc
        logger.info("Issued invoice %s for booking %s", invoice["invoice_number"], booking_id)
        return invoice

    def delete_booking(self, booking_id: str) -> None:
        self.store.delete(BOOKINGS, booking_id)

    def get_booking(self, booking_id: str) -> dict:
        return self._find(BOOKINGS, booking_id)

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------
    def get_invoice(self, invoice_id: str) -> dict:
        invoice = self._find(INVOICES, invoice_id)
        if not invoice.get("items"):
            raise ValidationError(f"Invoice {invoice['invoice_number']} has no line items")
        return invoice

    def update_invoice_status(self, invoice_id: str, status: str) -> None:
        if status not in INVOICE_STATUSES:
            raise ValidationError(f"Unknown invoice status: {status}")
        self.store.update(INVOICES, invoice_id, {"status": status})

    def delete_invoice(self, invoice_id: str) -> None:
        self.store.delete(INVOICES, invoice_id)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def booking_summary(self) -> dict:
        return reports.booking_summary(self.collection(BOOKINGS))

    def invoice_summary(self) -> dict:
        return reports.invoice_summary(self.collection(INVOICES))

    def dashboard(self, today: dt.date | None = None) -> dict:
        """Return a snapshot summary for the dashboard view."""

        today = today or self._today()
        students = self.collection(STUDENTS)
        return {
            "date": today.isoformat(),
            "students": len(students),
            "monthly_registrations": reports.monthly_registrations(students, today),
            "attendance": self.attendance_day(today),
            "bookings": self.booking_summary(),
            "invoices": self.invoice_summary(),
        }

    def close(self) -> None:
        for unsubscribe in list(self._unsubscribers.values()):
            unsubscribe()
        self._unsubscribers.clear()
        self.store.close()
