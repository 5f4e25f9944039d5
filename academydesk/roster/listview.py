"""Search, pagination and editor state for the record lists.

Every list in the UI (students, the attendance sheet, bookings and
invoices) goes through :func:`view`. The state a list keeps between
requests lives in :class:`ListViewState`, which only changes through the
pure ``apply_*`` functions below.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Mapping, Sequence

from .errors import ValidationError

DEFAULT_PAGE_SIZE = 10

SEARCH_FIELDS: dict[str, tuple[str, ...]] = {
    "students": ("name", "address", "phone", "batch"),
    # The attendance sheet lists students, not attendance records.
    "attendance": ("name", "batch"),
    "bookings": ("student_name", "date", "status"),
    "invoices": ("invoice_number", "student_name"),
}


@dataclass(frozen=True)
class ListPage:
    items: list[dict]
    total_pages: int
    page: int
    total_items: int


@dataclass(frozen=True)
class ListViewState:
    search_term: str = ""
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None, page_size: int = DEFAULT_PAGE_SIZE) -> "ListViewState":
        if not data:
            return cls(page_size=page_size)
        return cls(
            search_term=str(data.get("search_term", "")),
            page=int(data.get("page", 1)),
            page_size=int(data.get("page_size", page_size)),
        )


@dataclass(frozen=True)
class EditorState:
    open: bool = False
    editing: bool = False
    draft: dict[str, Any] = field(default_factory=dict)


def _matches(record: Mapping[str, Any], term: str, fields: Sequence[str]) -> bool:
    for name in fields:
        value = record.get(name)
        if value is not None and term in str(value).lower():
            return True
    return False


def filter_records(
    records: Sequence[dict], search_term: str, fields: Sequence[str]
) -> list[dict]:
    """Return records whose searchable fields contain ``search_term``."""

    term = (search_term or "").strip().lower()
    if not term:
        return list(records)
    return [record for record in records if _matches(record, term, fields)]


def count_pages(item_count: int, page_size: int) -> int:
    if page_size < 1:
        raise ValidationError("Page size must be at least 1")
    return max(1, math.ceil(item_count / page_size))


def view(
    records: Sequence[dict],
    search_term: str = "",
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    *,
    fields: Sequence[str],
) -> ListPage:
    """Filter ``records`` and return the requested page."""

    filtered = filter_records(records, search_term, fields)
    total_pages = count_pages(len(filtered), page_size)
    start = (page - 1) * page_size
    return ListPage(
        items=filtered[start : start + page_size] if start >= 0 else [],
        total_pages=total_pages,
        page=page,
        total_items=len(filtered),
    )


def view_state(records: Sequence[dict], state: ListViewState, fields: Sequence[str]) -> ListPage:
    return view(records, state.search_term, state.page, state.page_size, fields=fields)


def page_numbers(total_pages: int) -> list[int]:
    return list(range(1, total_pages + 1))


# ----------------------------------------------------------------------
# State transitions
# ----------------------------------------------------------------------
def apply_search(state: ListViewState, search_term: str) -> ListViewState:
    return replace(state, search_term=search_term, page=1)


def apply_page_size(state: ListViewState, page_size: int) -> ListViewState:
    if page_size < 1:
        raise ValidationError("Page size must be at least 1")
    return replace(state, page_size=page_size, page=1)


def apply_page(state: ListViewState, page: int, total_pages: int) -> ListViewState:
    """Move to ``page`` if it exists; out-of-range requests change nothing."""

    if 1 <= page <= total_pages:
        return replace(state, page=page)
    return state


def open_editor(defaults: Mapping[str, Any], record: Mapping[str, Any] | None = None) -> EditorState:
    """Open the add form, or the edit form when ``record`` is given."""

    if record is None:
        return EditorState(open=True, editing=False, draft=dict(defaults))
    return EditorState(open=True, editing=True, draft={**defaults, **record})


def close_editor(state: EditorState) -> EditorState:
    return replace(state, open=False)
