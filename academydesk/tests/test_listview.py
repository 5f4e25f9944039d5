import unittest

from academydesk.roster.errors import ValidationError
from academydesk.roster.listview import (
    SEARCH_FIELDS,
    EditorState,
    ListViewState,
    apply_page,
    apply_page_size,
    apply_search,
    close_editor,
    count_pages,
    open_editor,
    page_numbers,
    view,
)

STUDENTS = [
    {"id": "s1", "name": "Alice", "address": "1 Elm St", "phone": "0411", "batch": "Dev 4to5pm below 6 yrs"},
    {"id": "s2", "name": "Bob", "address": "2 Oak Ave", "phone": "0422", "batch": "Beginner 5to6pm below 8 yrs"},
    {"id": "s3", "name": "Dalia", "address": "3 Pine Rd", "phone": "0433", "batch": "Dev 6to7pm below 10 yrs"},
]


class ViewTestCase(unittest.TestCase):
    def test_search_is_case_insensitive_substring(self) -> None:
        listing = view(STUDENTS, "ali", 1, 10, fields=SEARCH_FIELDS["students"])
        self.assertEqual([s["name"] for s in listing.items], ["Alice", "Dalia"])
        self.assertEqual(listing.total_pages, 1)
        self.assertEqual(listing.total_items, 2)
        listing = view(STUDENTS, "alic", 1, 10, fields=SEARCH_FIELDS["students"])
        self.assertEqual([s["name"] for s in listing.items], ["Alice"])

    def test_search_covers_every_listed_field(self) -> None:
        fields = SEARCH_FIELDS["students"]
        self.assertEqual([s["id"] for s in view(STUDENTS, "OAK", fields=fields).items], ["s2"])
        self.assertEqual([s["id"] for s in view(STUDENTS, "0433", fields=fields).items], ["s3"])
        self.assertEqual([s["id"] for s in view(STUDENTS, "dev", fields=fields).items], ["s1", "s3"])

    def test_empty_search_returns_collection_unchanged(self) -> None:
        listing = view(STUDENTS, "", 1, 10, fields=SEARCH_FIELDS["students"])
        self.assertEqual(listing.items, STUDENTS)
        listing = view(STUDENTS, "   ", 1, 10, fields=SEARCH_FIELDS["students"])
        self.assertEqual(listing.items, STUDENTS)

    def test_total_pages(self) -> None:
        fields = SEARCH_FIELDS["students"]
        for size, expected in ((1, 3), (2, 2), (3, 1), (10, 1)):
            self.assertEqual(view(STUDENTS, "", 1, size, fields=fields).total_pages, expected)
        empty = view([], "", 1, 10, fields=fields)
        self.assertEqual(empty.total_pages, 1)
        self.assertEqual(empty.items, [])
        self.assertEqual(view(STUDENTS, "zzz", 1, 2, fields=fields).total_pages, 1)

    def test_page_slices(self) -> None:
        fields = SEARCH_FIELDS["students"]
        self.assertEqual([s["id"] for s in view(STUDENTS, "", 2, 2, fields=fields).items], ["s3"])
        self.assertEqual(view(STUDENTS, "", 3, 2, fields=fields).items, [])
        self.assertEqual(view(STUDENTS, "", 0, 2, fields=fields).items, [])

    def test_missing_fields_do_not_match(self) -> None:
        bookings = [{"student_name": "Guest", "status": "pending"}]
        listing = view(bookings, "2024", fields=SEARCH_FIELDS["bookings"])
        self.assertEqual(listing.items, [])

    def test_invalid_page_size(self) -> None:
        with self.assertRaises(ValidationError):
            count_pages(3, 0)
        with self.assertRaises(ValidationError):
            view(STUDENTS, "", 1, 0, fields=SEARCH_FIELDS["students"])

    def test_page_numbers(self) -> None:
        self.assertEqual(page_numbers(3), [1, 2, 3])


class StateTransitionTestCase(unittest.TestCase):
    def test_search_and_page_size_reset_page(self) -> None:
        state = ListViewState(search_term="", page=3, page_size=10)
        self.assertEqual(apply_search(state, "bob"), ListViewState("bob", 1, 10))
        self.assertEqual(apply_page_size(state, 25), ListViewState("", 1, 25))
        with self.assertRaises(ValidationError):
            apply_page_size(state, 0)

    def test_out_of_range_navigation_is_ignored(self) -> None:
        state = ListViewState(page=2)
        self.assertIs(apply_page(state, 0, 3), state)
        self.assertIs(apply_page(state, 4, 3), state)
        self.assertEqual(apply_page(state, 3, 3).page, 3)
        self.assertEqual(apply_page(state, 1, 3).page, 1)

    def test_state_round_trips_through_dict(self) -> None:
        state = ListViewState("ali", 2, 25)
        self.assertEqual(ListViewState.from_dict(state.to_dict()), state)
        self.assertEqual(ListViewState.from_dict(None, page_size=5), ListViewState(page_size=5))

    def test_editor_states(self) -> None:
        defaults = {"batch": "Dev 4to5pm below 6 yrs", "name": ""}
        adding = open_editor(defaults)
        self.assertEqual(adding, EditorState(open=True, editing=False, draft=defaults))
        self.assertIsNot(adding.draft, defaults)

        editing = open_editor(defaults, STUDENTS[0])
        self.assertTrue(editing.editing)
        self.assertEqual(editing.draft["name"], "Alice")
        editing.draft["name"] = "Changed"
        self.assertEqual(STUDENTS[0]["name"], "Alice")

        self.assertFalse(close_editor(editing).open)


if __name__ == "__main__":
    unittest.main()
