"""Tests for the data access layer, against in-memory SQLite."""

import unittest

from leaderboard import db

from tests.helpers import StoreTestCase


class TestAddPoints(StoreTestCase):

    def test_new_name_creates_one_row(self):
        entry = db.add_points("Alice", 7, "The Latent")
        self.assertEqual(entry.points, 7)
        self.assertEqual(entry.game, "The Latent")
        self.assertIsNotNone(entry.created_at)
        self.assertEqual(len(db.list_entries()), 1)

    def test_points_accumulate(self):
        db.add_points("Alice", 3, "The Latent")
        entry = db.add_points("Alice", 5, "The Latent")
        self.assertEqual(entry.points, 8)
        self.assertEqual(len(db.list_entries()), 1)

    def test_name_match_ignores_case_and_spaces(self):
        first = db.add_points("Alice", 3)
        again = db.add_points("  ALICE ", 4)
        self.assertEqual(first.id, again.id)
        self.assertEqual(again.name, "Alice")
        self.assertEqual(again.points, 7)

    def test_games_are_separate_boards(self):
        db.add_points("Alice", 3, "The Latent")
        db.add_points("Alice", 4, "Sky Forge")
        self.assertEqual(self.points_of("alice", "The Latent"), 3)
        self.assertEqual(self.points_of("alice", "Sky Forge"), 4)
        self.assertIsNone(db.find_entry("alice", None))

    def test_add_many_in_one_go(self):
        db.add_points("Ann", 1, "The Latent")
        count = db.add_points_many([("Ann", 2, "The Latent"), ("Ben", 5, "The Latent")])
        self.assertEqual(count, 2)
        self.assertEqual(self.points_of("Ann", "The Latent"), 3)
        self.assertEqual(self.points_of("Ben", "The Latent"), 5)
        self.assertEqual(db.add_points_many([]), 0)


class TestUpdates(StoreTestCase):

    def setUp(self):
        super().setUp()
        self.entry = db.add_points("Alice", 1)

    def test_set_points(self):
        self.assertTrue(db.set_points(self.entry.id, 42))
        self.assertEqual(self.points_of("Alice"), 42)

    def test_increment_and_decrement(self):
        db.increment_points(self.entry.id)
        self.assertEqual(self.points_of("Alice"), 2)
        db.decrement_points(self.entry.id)
        db.decrement_points(self.entry.id)
        db.decrement_points(self.entry.id)
        self.assertEqual(self.points_of("Alice"), 0)

    def test_missing_id_reports_nothing_changed(self):
        self.assertFalse(db.set_points("nope", 1))
        self.assertFalse(db.increment_points("nope"))
        self.assertFalse(db.delete_entry("nope"))

    def test_delete(self):
        self.assertTrue(db.delete_entry(self.entry.id))
        self.assertEqual(db.list_entries(), [])

    def test_set_points_by_name_replaces(self):
        db.add_points("Alice", 9, "Sky Forge")
        db.set_points_by_name("alice", 4, ["Sky Forge", "Neon Drift"])
        self.assertEqual(self.points_of("Alice", "Sky Forge"), 4)
        self.assertEqual(self.points_of("Alice", "Neon Drift"), 4)


class TestListAndClear(StoreTestCase):

    def test_list_orders_by_points(self):
        db.add_points("Low", 1, "The Latent")
        db.add_points("High", 9, "Sky Forge")
        db.add_points("Mid", 5)
        self.assertEqual([e.name for e in db.list_entries()], ["High", "Mid", "Low"])

    def test_clear_removes_every_game(self):
        db.add_points("A", 1, "The Latent")
        db.add_points("B", 1, "Sky Forge")
        db.add_points("C", 1)
        self.assertEqual(db.clear_entries(), 3)
        self.assertEqual(db.list_entries(), [])

    def test_init_is_repeatable(self):
        db.add_points("A", 1)
        db.init_db()
        self.assertEqual(len(db.list_entries()), 1)
        self.assertFalse(db.is_postgres())


if __name__ == "__main__":
    unittest.main()
