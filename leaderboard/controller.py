"""
Leaderboard operations.

Every method takes the session's current ViewState and returns the next one.
Store and validation errors never escape: they become a single message in
`state.error`, replacing whatever was there. Nothing is retried.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

import config
from leaderboard import auth, db
from leaderboard.changes import ChangeFeed
from leaderboard.csv_import import merge_rows, parse_csv
from leaderboard.errors import LeaderboardError, ValidationError
from leaderboard.state import (
    AdminLoggedIn,
    AdminLoggedOut,
    ChangesApplied,
    CopyFinished,
    EditFinished,
    Failed,
    ImportCleared,
    ImportStaged,
    Refreshed,
    Succeeded,
    ViewState,
    reduce,
)

logger = logging.getLogger(__name__)


def store_message(exc: SQLAlchemyError) -> str:
    """The driver's message if there is one, without SQLAlchemy's statement dump."""
    orig = getattr(exc, "orig", None)
    message = str(orig if orig is not None else exc).strip()
    return message.splitlines()[0] if message else "An error occurred"


def parse_points(value: Union[int, str, None]) -> int:
    try:
        points = int(str(value).strip())
    except ValueError:
        raise ValidationError("Points must be a whole number.") from None
    if points < 0:
        raise ValidationError("Points can't be negative.")
    return points


def check_game(game: Optional[str]) -> Optional[str]:
    games = config.games()
    if not games:
        return None
    if game not in games:
        raise ValidationError(f"Unknown game: {game!r}. Pick one of: {', '.join(games)}")
    return game


class Controller:
    def __init__(self, feed: Optional[ChangeFeed] = None):
        self.feed = feed

    # ----------------------------
    # Loading
    # ----------------------------

    def refresh(self, state: ViewState, clear_error: bool = True) -> ViewState:
        # Take the feed position before reading so no change slips between the two
        seq = self.feed.latest_seq if self.feed else 0
        try:
            entries = db.list_entries()
        except SQLAlchemyError as exc:
            logger.exception("Error fetching leaderboard")
            return reduce(state, Failed(store_message(exc)))
        except LeaderboardError as exc:
            logger.error("Error fetching leaderboard: %s", exc)
            return reduce(state, Failed(str(exc)))
        return reduce(state, Refreshed(tuple(entries), seq, clear_error))

    def sync(self, state: ViewState) -> ViewState:
        """Bring state up to date: apply queued changes, or refresh if that isn't possible."""
        if self.feed is None or not state.loaded:
            return self.refresh(state, clear_error=False)
        latest, events = self.feed.events_since(state.feed_seq)
        if events is None:
            logger.debug("Session fell behind the change feed; refreshing")
            return self.refresh(state, clear_error=False)
        if latest == state.feed_seq:
            return state
        return reduce(state, ChangesApplied(events, latest))

    # ----------------------------
    # Admin gate
    # ----------------------------

    def login(self, state: ViewState, code: str) -> ViewState:
        try:
            token = auth.issue_token(code)
        except LeaderboardError as exc:
            return reduce(state, Failed(str(exc)))
        return reduce(state, AdminLoggedIn(token))

    def logout(self, state: ViewState) -> ViewState:
        return reduce(state, AdminLoggedOut())

    def _mutate(self, state: ViewState, op: Callable[[], Optional[str]], *after) -> ViewState:
        """Run `op` as admin, then refresh. `op` returns an optional notice."""
        try:
            auth.require_admin(state.admin_token)
            notice = op()
        except LeaderboardError as exc:
            logger.warning("Rejected leaderboard change: %s", exc)
            return reduce(state, Failed(str(exc)))
        except SQLAlchemyError as exc:
            logger.exception("Leaderboard change failed")
            return reduce(state, Failed(store_message(exc)))
        return self.refresh(reduce(state, *after, Succeeded(notice)))

    # ----------------------------
    # Single-row changes
    # ----------------------------

    def add_or_accumulate(self, state: ViewState, name: str, points, game: Optional[str] = None) -> ViewState:
        def op():
            clean = (name or "").strip()
            if not clean:
                raise ValidationError("Player name is required.")
            entry = db.add_points(clean, parse_points(points), check_game(game))
            return f"{entry.name} now has {entry.points} points." if entry else None

        return self._mutate(state, op)

    def set_points(self, state: ViewState, entry_id: str, points) -> ViewState:
        def op():
            if not db.set_points(entry_id, parse_points(points)):
                raise ValidationError("That entry no longer exists.")

        return self._mutate(state, op, EditFinished())

    def increment(self, state: ViewState, entry_id: str) -> ViewState:
        def op():
            if not db.increment_points(entry_id):
                raise ValidationError("That entry no longer exists.")

        return self._mutate(state, op)

    def decrement(self, state: ViewState, entry_id: str) -> ViewState:
        def op():
            if not db.decrement_points(entry_id):
                raise ValidationError("That entry no longer exists.")

        return self._mutate(state, op)

    def delete(self, state: ViewState, entry_id: str) -> ViewState:
        def op():
            db.delete_entry(entry_id)

        return self._mutate(state, op)

    def clear_all(self, state: ViewState) -> ViewState:
        def op():
            return f"Removed {db.clear_entries()} entries."

        return self._mutate(state, op)

    # ----------------------------
    # Bulk import
    # ----------------------------

    def stage_import(self, state: ViewState, content: str) -> ViewState:
        try:
            auth.require_admin(state.admin_token)
            preview = parse_csv(content, config.games())
        except LeaderboardError as exc:
            logger.warning("Rejected CSV import: %s", exc)
            return reduce(state, Failed(str(exc)))
        if not preview.rows:
            return reduce(state, ImportCleared(), Failed(f"No usable rows in CSV ({preview.skipped} skipped)."))
        return reduce(state, ImportStaged(preview), Succeeded(None))

    def apply_import(self, state: ViewState) -> ViewState:
        preview = state.staged_import

        def op():
            if preview is None or not preview.rows:
                raise ValidationError("Nothing staged to import.")
            writes = db.add_points_many(merge_rows(preview.rows))
            logger.info("Imported %s CSV rows as %s writes", len(preview.rows), writes)
            return f"Imported {len(preview.rows)} rows."

        return self._mutate(state, op, ImportCleared())

    # ----------------------------
    # Cross-game copy
    # ----------------------------

    def copy_to_games(self, state: ViewState, entry_id: str, targets: Iterable[str]) -> ViewState:
        def op():
            if not config.games():
                raise ValidationError("Cross-game copy needs games enabled.")
            source = state.entry(entry_id)
            if source is None:
                raise ValidationError("That entry no longer exists.")
            games = [check_game(g) for g in dict.fromkeys(targets) if g != source.game]
            if not games:
                raise ValidationError("Pick at least one other game to copy to.")
            db.set_points_by_name(source.name, source.points, games)
            return f"Copied {source.name} ({source.points} points) to {', '.join(games)}."

        return self._mutate(state, op, CopyFinished())
