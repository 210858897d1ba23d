"""
CSV bulk import.

Header row required: name, points and (when games are enabled) game or games.
A `games` cell lists several games separated by ';'. Rows that can't be used
(empty name, points not a whole number, unknown game) are dropped and counted.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from leaderboard.errors import ValidationError
from leaderboard.models import name_key

logger = logging.getLogger(__name__)

GAMES_SEPARATOR = ";"


@dataclass(frozen=True)
class StagedRow:
    name: str
    points: int
    games: Tuple[Optional[str], ...]


@dataclass(frozen=True)
class ImportPreview:
    rows: Tuple[StagedRow, ...]
    skipped: int = 0

    @property
    def writes(self) -> int:
        return sum(len(r.games) for r in self.rows)

    @property
    def summary(self) -> str:
        return f"{len(self.rows)} rows ready → {self.writes} writes · {self.skipped} skipped"


def decode_upload(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def _required_columns(header: List[str], games: Sequence[str]) -> List[str]:
    missing = [c for c in ("name", "points") if c not in header]
    if games and "game" not in header and "games" not in header:
        missing.append("game")
    return missing


def _parse_points(raw: str) -> Optional[int]:
    try:
        points = int(raw.strip())
    except ValueError:
        return None
    return points if points >= 0 else None


def _resolve_games(raw: str, allowed: Dict[str, str]) -> Optional[Tuple[str, ...]]:
    """Map a cell to canonical game names; None if empty or any game is unknown."""
    out: List[str] = []
    for part in raw.split(GAMES_SEPARATOR):
        part = part.strip()
        if not part:
            continue
        canonical = allowed.get(part.casefold())
        if canonical is None:
            return None
        if canonical not in out:
            out.append(canonical)
    return tuple(out) or None


def parse_csv(content: str, games: Sequence[str] = ()) -> ImportPreview:
    """Parse CSV text into staged rows. Raises ValidationError for a bad header."""
    reader = csv.reader(io.StringIO(content))
    header: Optional[List[str]] = None
    for row in reader:
        if any(cell.strip() for cell in row):
            header = [cell.strip().lower() for cell in row]
            break
    if header is None:
        raise ValidationError("CSV is empty.")

    missing = _required_columns(header, games)
    if missing:
        raise ValidationError(f"CSV missing columns: {missing}. Found columns: {header}")

    name_idx = header.index("name")
    points_idx = header.index("points")
    game_idx = None
    if games:
        game_idx = header.index("games") if "games" in header else header.index("game")
    allowed = {g.casefold(): g for g in games}

    staged: List[StagedRow] = []
    skipped = 0
    for line_no, row in enumerate(reader, start=2):
        if not any(cell.strip() for cell in row):
            continue
        cells = row + [""] * (len(header) - len(row))
        name = cells[name_idx].strip()
        points = _parse_points(cells[points_idx])
        row_games: Optional[Tuple[Optional[str], ...]] = (None,)
        if game_idx is not None:
            row_games = _resolve_games(cells[game_idx], allowed)
        if not name or points is None or row_games is None:
            logger.debug("Dropping CSV line %s: %r", line_no, row)
            skipped += 1
            continue
        staged.append(StagedRow(name=name, points=points, games=row_games))

    return ImportPreview(rows=tuple(staged), skipped=skipped)


def merge_rows(rows: Sequence[StagedRow]) -> List[Tuple[str, int, Optional[str]]]:
    """
    Flatten staged rows to (name, points, game) writes, summing points for the
    same name (case-insensitive) within a game. First spelling seen wins.
    """
    merged: Dict[Tuple[Optional[str], str], List] = {}
    for row in rows:
        for game in row.games:
            key = (game, name_key(row.name))
            if key in merged:
                merged[key][1] += row.points
            else:
                merged[key] = [row.name, row.points, game]
    return [(name, points, game) for name, points, game in merged.values()]
