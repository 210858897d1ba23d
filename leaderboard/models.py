"""Records shared by the store, the change feed and the view state."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

# Valid change-feed operations
INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


def name_key(name: str) -> str:
    """Key used to match names case-insensitively."""
    return name.strip().casefold()


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    # SQLite hands back text; Postgres JSON payloads use ISO 8601
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass(frozen=True)
class Entry:
    id: str
    name: str
    points: int
    created_at: Optional[datetime] = None
    game: Optional[str] = None  # None when the board has no games

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Entry":
        """Build an Entry from a store row (dict-like mapping)."""
        return cls(
            id=str(row["id"]),
            name=row["name"],
            points=int(row["points"] or 0),
            created_at=_to_datetime(row.get("created_at")),
            game=row.get("game") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "points": self.points,
            "created_at": self.created_at,
            "game": self.game,
        }


@dataclass(frozen=True)
class ChangeEvent:
    op: str
    entry: Entry
