"""Shared fixtures for the test suite."""

import unittest
from datetime import datetime, timedelta

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from leaderboard import db
from leaderboard.models import Entry

BASE_TIME = datetime(2026, 1, 1, 12, 0, 0)


def make_entry(entry_id, name, points, game=None, minutes=0):
    return Entry(
        id=str(entry_id),
        name=name,
        points=points,
        created_at=BASE_TIME + timedelta(minutes=minutes),
        game=game,
    )


class StoreTestCase(unittest.TestCase):
    """Runs each test against a fresh in-memory SQLite store."""

    def setUp(self):
        self.engine = create_engine(
            "sqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        db.set_engine(self.engine)
        db.init_db()

    def tearDown(self):
        db.set_engine(None)
        self.engine.dispose()

    def points_of(self, name, game=None):
        entry = db.find_entry(name, game)
        return entry.points if entry else None
