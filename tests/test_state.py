"""Tests for the view-state reducers."""

import unittest

from leaderboard.csv_import import ImportPreview, StagedRow
from leaderboard.models import DELETE, INSERT, UPDATE, ChangeEvent
from leaderboard.state import (
    AdminLoggedIn,
    AdminLoggedOut,
    ChangesApplied,
    EditFinished,
    EditStarted,
    ErrorDismissed,
    Failed,
    GameFilterChanged,
    ImportStaged,
    Refreshed,
    SearchChanged,
    Succeeded,
    ViewState,
    apply_events,
    reduce,
)

from tests.helpers import make_entry


class TestReducers(unittest.TestCase):

    def test_refresh_replaces_entries_and_clears_error(self):
        state = ViewState(entries=(make_entry(1, "Old", 1),), error="boom")
        new = reduce(state, Refreshed((make_entry(2, "New", 2),), feed_seq=7))
        self.assertEqual([e.name for e in new.entries], ["New"])
        self.assertIsNone(new.error)
        self.assertEqual(new.feed_seq, 7)
        self.assertTrue(new.loaded)
        # the original record is untouched
        self.assertEqual(state.error, "boom")

    def test_background_refresh_keeps_error(self):
        state = ViewState(entries=(make_entry(1, "Old", 1),), error="That entry no longer exists.")
        new = reduce(state, Refreshed((make_entry(2, "New", 2),), feed_seq=3, clear_error=False))
        self.assertEqual([e.name for e in new.entries], ["New"])
        self.assertEqual(new.error, "That entry no longer exists.")

    def test_failure_replaces_previous_error(self):
        state = reduce(ViewState(), Failed("first"), Failed("second"))
        self.assertEqual(state.error, "second")
        self.assertIsNone(reduce(state, ErrorDismissed()).error)

    def test_success_clears_error(self):
        state = reduce(ViewState(error="old"), Succeeded("done"))
        self.assertIsNone(state.error)
        self.assertEqual(state.notice, "done")

    def test_edit_cycle(self):
        state = reduce(ViewState(), EditStarted("abc", 12))
        self.assertEqual((state.editing_id, state.edit_points), ("abc", 12))
        state = reduce(state, EditFinished())
        self.assertIsNone(state.editing_id)

    def test_blank_game_filter_means_all(self):
        self.assertIsNone(reduce(ViewState(game_filter="X"), GameFilterChanged("")).game_filter)

    def test_logout_drops_admin_only_state(self):
        preview = ImportPreview(rows=(StagedRow("Ann", 1, (None,)),))
        state = reduce(
            ViewState(),
            AdminLoggedIn("token"),
            ImportStaged(preview),
            EditStarted("abc", 3),
            SearchChanged("an"),
        )
        self.assertTrue(state.is_admin)
        state = reduce(state, AdminLoggedOut())
        self.assertFalse(state.is_admin)
        self.assertIsNone(state.staged_import)
        self.assertIsNone(state.editing_id)
        self.assertEqual(state.search, "an")

    def test_unknown_action(self):
        with self.assertRaises(TypeError):
            reduce(ViewState(), object())


class TestApplyEvents(unittest.TestCase):

    def test_insert_update_delete(self):
        a, b = make_entry(1, "A", 1), make_entry(2, "B", 2)
        events = [
            ChangeEvent(INSERT, make_entry(3, "C", 3)),
            ChangeEvent(UPDATE, make_entry(1, "A", 10)),
            ChangeEvent(DELETE, b),
            ChangeEvent(DELETE, make_entry(99, "Gone", 0)),
        ]
        rows = apply_events([a, b], events)
        self.assertEqual([(e.id, e.points) for e in rows], [("1", 10), ("3", 3)])

    def test_update_for_unknown_row_is_added(self):
        rows = apply_events([], [ChangeEvent(UPDATE, make_entry(5, "E", 5))])
        self.assertEqual([e.id for e in rows], ["5"])

    def test_deleting_row_being_edited_ends_edit(self):
        a = make_entry(1, "A", 1)
        state = ViewState(entries=(a,), editing_id="1", feed_seq=3)
        state = reduce(state, ChangesApplied((ChangeEvent(DELETE, a),), feed_seq=4))
        self.assertEqual(state.entries, ())
        self.assertIsNone(state.editing_id)
        self.assertEqual(state.feed_seq, 4)


if __name__ == "__main__":
    unittest.main()
