"""
View state for one browser session.

`ViewState` is immutable. Every change goes through `reduce(state, action)`,
which looks up the reducer for the action's type. Reducers are pure: they
never touch the store or Streamlit.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional, Sequence, Tuple, Type

from leaderboard.csv_import import ImportPreview
from leaderboard.models import DELETE, ChangeEvent, Entry


@dataclass(frozen=True)
class ViewState:
    entries: Tuple[Entry, ...] = ()
    error: Optional[str] = None
    notice: Optional[str] = None
    search: str = ""
    sort_key: str = "points"
    descending: bool = True
    game_filter: Optional[str] = None
    editing_id: Optional[str] = None
    edit_points: int = 0
    admin_token: Optional[str] = None
    show_admin_login: bool = False
    staged_import: Optional[ImportPreview] = None
    copying_id: Optional[str] = None
    feed_seq: int = 0
    loaded: bool = False

    @property
    def is_admin(self) -> bool:
        # Display flag only; mutations re-check the token itself
        return self.admin_token is not None

    def entry(self, entry_id: str) -> Optional[Entry]:
        for e in self.entries:
            if e.id == entry_id:
                return e
        return None


# ----------------------------
# Actions
# ----------------------------

@dataclass(frozen=True)
class Refreshed:
    entries: Tuple[Entry, ...]
    feed_seq: int = 0
    # Background polling keeps a pending error on screen
    clear_error: bool = True


@dataclass(frozen=True)
class ChangesApplied:
    events: Tuple[ChangeEvent, ...]
    feed_seq: int


@dataclass(frozen=True)
class Failed:
    message: str


@dataclass(frozen=True)
class Succeeded:
    message: Optional[str] = None


@dataclass(frozen=True)
class ErrorDismissed:
    pass


@dataclass(frozen=True)
class SearchChanged:
    search: str


@dataclass(frozen=True)
class SortChanged:
    sort_key: str
    descending: bool


@dataclass(frozen=True)
class GameFilterChanged:
    game: Optional[str]


@dataclass(frozen=True)
class EditStarted:
    entry_id: str
    points: int


@dataclass(frozen=True)
class EditPointsChanged:
    points: int


@dataclass(frozen=True)
class EditFinished:
    pass


@dataclass(frozen=True)
class AdminLoginShown:
    show: bool = True


@dataclass(frozen=True)
class AdminLoggedIn:
    token: str


@dataclass(frozen=True)
class AdminLoggedOut:
    pass


@dataclass(frozen=True)
class ImportStaged:
    preview: ImportPreview


@dataclass(frozen=True)
class ImportCleared:
    pass


@dataclass(frozen=True)
class CopyStarted:
    entry_id: str


@dataclass(frozen=True)
class CopyFinished:
    pass


# ----------------------------
# Reducers
# ----------------------------

def _refreshed(state: ViewState, action: Refreshed) -> ViewState:
    error = None if action.clear_error else state.error
    return replace(state, entries=tuple(action.entries), feed_seq=action.feed_seq, error=error, loaded=True)


def apply_events(entries: Sequence[Entry], events: Sequence[ChangeEvent]) -> Tuple[Entry, ...]:
    """Fold change events into an entry list: upsert by id, or remove on delete."""
    rows = list(entries)
    for event in events:
        idx = next((i for i, e in enumerate(rows) if e.id == event.entry.id), None)
        if event.op == DELETE:
            if idx is not None:
                del rows[idx]
        elif idx is None:
            rows.append(event.entry)
        else:
            rows[idx] = event.entry
    return tuple(rows)


def _changes_applied(state: ViewState, action: ChangesApplied) -> ViewState:
    entries = apply_events(state.entries, action.events)
    editing_id = state.editing_id
    if editing_id is not None and not any(e.id == editing_id for e in entries):
        editing_id = None
    return replace(state, entries=entries, feed_seq=action.feed_seq, editing_id=editing_id)


def _failed(state: ViewState, action: Failed) -> ViewState:
    return replace(state, error=action.message, notice=None)


def _succeeded(state: ViewState, action: Succeeded) -> ViewState:
    return replace(state, error=None, notice=action.message)


def _error_dismissed(state: ViewState, action: ErrorDismissed) -> ViewState:
    return replace(state, error=None, notice=None)


def _search_changed(state: ViewState, action: SearchChanged) -> ViewState:
    return replace(state, search=action.search)


def _sort_changed(state: ViewState, action: SortChanged) -> ViewState:
    return replace(state, sort_key=action.sort_key, descending=action.descending)


def _game_filter_changed(state: ViewState, action: GameFilterChanged) -> ViewState:
    return replace(state, game_filter=action.game or None)


def _edit_started(state: ViewState, action: EditStarted) -> ViewState:
    return replace(state, editing_id=action.entry_id, edit_points=action.points)


def _edit_points_changed(state: ViewState, action: EditPointsChanged) -> ViewState:
    return replace(state, edit_points=action.points)


def _edit_finished(state: ViewState, action: EditFinished) -> ViewState:
    return replace(state, editing_id=None, edit_points=0)


def _admin_login_shown(state: ViewState, action: AdminLoginShown) -> ViewState:
    return replace(state, show_admin_login=action.show)


def _admin_logged_in(state: ViewState, action: AdminLoggedIn) -> ViewState:
    return replace(state, admin_token=action.token, show_admin_login=False, error=None)


def _admin_logged_out(state: ViewState, action: AdminLoggedOut) -> ViewState:
    return replace(
        state,
        admin_token=None,
        editing_id=None,
        staged_import=None,
        copying_id=None,
        error=None,
    )


def _import_staged(state: ViewState, action: ImportStaged) -> ViewState:
    return replace(state, staged_import=action.preview)


def _import_cleared(state: ViewState, action: ImportCleared) -> ViewState:
    return replace(state, staged_import=None)


def _copy_started(state: ViewState, action: CopyStarted) -> ViewState:
    return replace(state, copying_id=action.entry_id)


def _copy_finished(state: ViewState, action: CopyFinished) -> ViewState:
    return replace(state, copying_id=None)


REDUCERS: Dict[Type, Callable] = {
    Refreshed: _refreshed,
    ChangesApplied: _changes_applied,
    Failed: _failed,
    Succeeded: _succeeded,
    ErrorDismissed: _error_dismissed,
    SearchChanged: _search_changed,
    SortChanged: _sort_changed,
    GameFilterChanged: _game_filter_changed,
    EditStarted: _edit_started,
    EditPointsChanged: _edit_points_changed,
    EditFinished: _edit_finished,
    AdminLoginShown: _admin_login_shown,
    AdminLoggedIn: _admin_logged_in,
    AdminLoggedOut: _admin_logged_out,
    ImportStaged: _import_staged,
    ImportCleared: _import_cleared,
    CopyStarted: _copy_started,
    CopyFinished: _copy_finished,
}


def reduce(state: ViewState, *actions) -> ViewState:
    """Apply one or more actions in order."""
    for action in actions:
        try:
            reducer = REDUCERS[type(action)]
        except KeyError:
            raise TypeError(f"Unknown action: {action!r}") from None
        state = reducer(state, action)
    return state
