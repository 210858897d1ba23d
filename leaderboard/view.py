# leaderboard/view.py
from typing import Dict, List, Optional, Sequence

import pandas as pd

from leaderboard.models import Entry

SORT_KEYS = ("points", "name", "created_at")

_SORT_FUNCS = {
    "points": lambda e: e.points,
    "name": lambda e: e.name.casefold(),
    # Rows still waiting on a store timestamp sort first
    "created_at": lambda e: (e.created_at is not None, e.created_at.timestamp() if e.created_at else 0.0),
}


def derive_view(
    entries: Sequence[Entry],
    search: str = "",
    sort_key: str = "points",
    descending: bool = True,
    game: Optional[str] = None,
) -> List[Entry]:
    """Game filter, then case-insensitive name search, then a stable sort."""
    if sort_key not in _SORT_FUNCS:
        raise ValueError(f"Unknown sort key: {sort_key}")

    rows = list(entries)
    if game:
        rows = [e for e in rows if e.game == game]
    needle = search.strip().casefold()
    if needle:
        rows = [e for e in rows if needle in e.name.casefold()]
    # sorted() is stable with reverse=True too, so ties keep fetch order
    return sorted(rows, key=_SORT_FUNCS[sort_key], reverse=descending)


def group_by_game(entries: Sequence[Entry], games: Sequence[str] = ()) -> Dict[Optional[str], List[Entry]]:
    """Split an already-ordered view per game: configured games first, then the rest, then no game."""
    groups: Dict[Optional[str], List[Entry]] = {g: [] for g in games}
    for e in entries:
        groups.setdefault(e.game, []).append(e)
    if None in groups:
        groups[None] = groups.pop(None)
    return {g: rows for g, rows in groups.items() if rows}


def to_frame(entries: Sequence[Entry]) -> pd.DataFrame:
    """Display frame with a points rank (ties share the best rank)."""
    cols = ["rank", "name", "points", "game", "created_at", "id"]
    if not entries:
        return pd.DataFrame(columns=cols)
    df = pd.DataFrame([e.to_dict() for e in entries])
    df["rank"] = df["points"].rank(method="min", ascending=False).astype(int)
    return df[cols]
