"""Per-day attendance summaries."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Sequence

ATTENDANCE_STATUSES = ("present", "absent", "late")


@dataclass(frozen=True)
class DaySummary:
    date: str
    present: int = 0
    late: int = 0
    absent: int = 0
    per_student: dict[str, str] = field(default_factory=dict)

    def status_for(self, student_id: str) -> str | None:
        return self.per_student.get(student_id)


def day_key(date: dt.date | str) -> str:
    """Normalise a date to the ISO day string stored on records."""

    if isinstance(date, dt.datetime):
        return date.date().isoformat()
    if isinstance(date, dt.date):
        return date.isoformat()
    return str(date)[:10]


def records_for_day(records: Sequence[dict], date: dt.date | str) -> list[dict]:
    key = day_key(date)
    return [record for record in records if record.get("date") == key]


def find_record(records: Sequence[dict], student_id: str, date: dt.date | str) -> dict | None:
    """Return the newest record for (student_id, date), if one exists."""

    key = day_key(date)
    for record in reversed(records):
        if record.get("student_id") == student_id and record.get("date") == key:
            return record
    return None


def derive_day(records: Sequence[dict], date: dt.date | str) -> DaySummary:
    key = day_key(date)
    per_student: dict[str, str] = {}
    for record in records_for_day(records, key):
        # Only one record per student and day counts; the newest wins.
        per_student[record["student_id"]] = record["status"]
    counts = {status: 0 for status in ATTENDANCE_STATUSES}
    for status in per_student.values():
        if status in counts:
            counts[status] += 1
    return DaySummary(
        date=key,
        present=counts["present"],
        late=counts["late"],
        absent=counts["absent"],
        per_student=per_student,
    )
