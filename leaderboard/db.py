"""
Data access layer for the leaderboard table.

- Uses SQLAlchemy + psycopg2 behind the scenes (PostgreSQL / Supabase in production).
- SQLite URLs work too, which is handy for local dev and tests (no change feed there).
- Reads the connection string from Streamlit secrets or the environment: DB_URL.
- All functions return plain Python types or Entry records.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine, Result

import config
from leaderboard.errors import ConfigurationError
from leaderboard.models import Entry, name_key

logger = logging.getLogger(__name__)

CHANNEL = "leaderboard_changes"

_COLUMNS = "id, name, points, game, created_at"


# ----------------------------
# Engine / Connection helpers
# ----------------------------

_engine: Optional[Engine] = None


def get_engine() -> Engine:
    """Create (or reuse) a global SQLAlchemy engine based on DB_URL."""
    global _engine
    if _engine is not None:
        return _engine

    db_url = config.db_url()
    if not db_url:
        raise ConfigurationError(
            "DB_URL not found in Streamlit secrets or the environment. "
            "Add it under App → Settings → Secrets or .streamlit/secrets.toml"
        )

    kwargs: Dict[str, Any] = {"pool_pre_ping": True}
    if not db_url.startswith("sqlite"):
        # You can tune pool size if needed
        kwargs.update(pool_size=5, max_overflow=5)
    _engine = create_engine(db_url, **kwargs)
    return _engine


def set_engine(engine: Optional[Engine]) -> None:
    """Swap the global engine (local dev, tests)."""
    global _engine
    _engine = engine


def is_postgres() -> bool:
    return get_engine().dialect.name == "postgresql"


def _fetchall(query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """Run a SELECT and return list of dicts."""
    eng = get_engine()
    with eng.connect() as conn:
        result: Result = conn.execute(text(query), params or {})
        return [dict(r) for r in result.mappings().all()]


def _execute(query: str, params: Optional[Dict[str, Any]] = None) -> int:
    """Run an INSERT/UPDATE/DELETE in a transaction and return the affected row count."""
    eng = get_engine()
    with eng.begin() as conn:
        return conn.execute(text(query), params or {}).rowcount


def _game(game: Optional[str]) -> str:
    # Rows without a game are stored under '' so the unique key stays total
    return game or ""


def _find(conn: Connection, name: str, game: Optional[str]) -> Optional[Entry]:
    row = conn.execute(
        text(f"SELECT {_COLUMNS} FROM leaderboard WHERE game = :game AND name_key = :name_key;"),
        {"game": _game(game), "name_key": name_key(name)},
    ).mappings().first()
    return Entry.from_row(dict(row)) if row else None


# ----------------------------
# Schema init
# ----------------------------

_DDL = [
    """
    CREATE TABLE IF NOT EXISTS leaderboard (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        name_key TEXT NOT NULL,
        points INTEGER NOT NULL DEFAULT 0,
        game TEXT NOT NULL DEFAULT '',
        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (game, name_key)
    );
    """,
    "CREATE INDEX IF NOT EXISTS leaderboard_points_idx ON leaderboard (points DESC);",
]

# Postgres only: publish every row change on the notification channel
_PG_NOTIFY_DDL = [
    f"""
    CREATE OR REPLACE FUNCTION notify_leaderboard_change() RETURNS trigger AS $$
    BEGIN
        IF TG_OP = 'DELETE' THEN
            PERFORM pg_notify('{CHANNEL}', CAST(json_build_object('op', TG_OP, 'row', row_to_json(OLD)) AS text));
            RETURN OLD;
        END IF;
        PERFORM pg_notify('{CHANNEL}', CAST(json_build_object('op', TG_OP, 'row', row_to_json(NEW)) AS text));
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql;
    """,
    "DROP TRIGGER IF EXISTS leaderboard_notify ON leaderboard;",
    """
    CREATE TRIGGER leaderboard_notify
    AFTER INSERT OR UPDATE OR DELETE ON leaderboard
    FOR EACH ROW EXECUTE FUNCTION notify_leaderboard_change();
    """,
]


def init_db() -> None:
    """
    Create the table (and, on Postgres, the change-notification trigger) if missing.
    You can also create this via the Supabase SQL editor; this is convenient for local dev.
    """
    eng = get_engine()
    statements = list(_DDL)
    if eng.dialect.name == "postgresql":
        statements += _PG_NOTIFY_DDL
    with eng.begin() as conn:
        for statement in statements:
            conn.execute(text(statement))


# ----------------------------
# Reads
# ----------------------------

def list_entries() -> List[Entry]:
    rows = _fetchall(f"SELECT {_COLUMNS} FROM leaderboard ORDER BY points DESC, created_at, id;")
    return [Entry.from_row(r) for r in rows]


def find_entry(name: str, game: Optional[str] = None) -> Optional[Entry]:
    """Exact game, case-insensitive name."""
    eng = get_engine()
    with eng.connect() as conn:
        return _find(conn, name, game)


# ----------------------------
# Writes
# ----------------------------

_ADD_POINTS = """
    INSERT INTO leaderboard (id, name, name_key, points, game)
    VALUES (:id, :name, :name_key, :points, :game)
    ON CONFLICT (game, name_key)
    DO UPDATE SET points = leaderboard.points + EXCLUDED.points;
"""

_SET_POINTS_BY_NAME = """
    INSERT INTO leaderboard (id, name, name_key, points, game)
    VALUES (:id, :name, :name_key, :points, :game)
    ON CONFLICT (game, name_key)
    DO UPDATE SET points = EXCLUDED.points;
"""


def _upsert_params(name: str, points: int, game: Optional[str]) -> Dict[str, Any]:
    return {
        "id": uuid.uuid4().hex,
        "name": name.strip(),
        "name_key": name_key(name),
        "points": int(points),
        "game": _game(game),
    }


def add_points(name: str, points: int, game: Optional[str] = None) -> Entry:
    """Insert a new row with `points`, or add `points` to the row with the same name in `game`."""
    eng = get_engine()
    with eng.begin() as conn:
        conn.execute(text(_ADD_POINTS), _upsert_params(name, points, game))
        return _find(conn, name, game)


def add_points_many(rows: Iterable[Tuple[str, int, Optional[str]]]) -> int:
    """
    rows: (name, points, game) tuples. Applied in a single transaction.
    Callers should merge duplicate (game, name) pairs first.
    """
    payload = [_upsert_params(name, points, game) for name, points, game in rows]
    if not payload:
        return 0
    eng = get_engine()
    with eng.begin() as conn:
        conn.execute(text(_ADD_POINTS), payload)
    return len(payload)


def set_points_by_name(name: str, points: int, games: Iterable[Optional[str]]) -> int:
    """Set (not add) the points of `name` in each game, creating rows as needed."""
    payload = [_upsert_params(name, points, g) for g in games]
    if not payload:
        return 0
    eng = get_engine()
    with eng.begin() as conn:
        conn.execute(text(_SET_POINTS_BY_NAME), payload)
    return len(payload)


def set_points(entry_id: str, points: int) -> bool:
    return _execute(
        "UPDATE leaderboard SET points = :points WHERE id = :id;",
        {"id": entry_id, "points": int(points)},
    ) > 0


def increment_points(entry_id: str) -> bool:
    return _execute("UPDATE leaderboard SET points = points + 1 WHERE id = :id;", {"id": entry_id}) > 0


def decrement_points(entry_id: str) -> bool:
    """Take one point away; never goes below zero."""
    return _execute(
        "UPDATE leaderboard SET points = CASE WHEN points > 0 THEN points - 1 ELSE 0 END WHERE id = :id;",
        {"id": entry_id},
    ) > 0


def delete_entry(entry_id: str) -> bool:
    return _execute("DELETE FROM leaderboard WHERE id = :id;", {"id": entry_id}) > 0


def clear_entries() -> int:
    """Delete every row, whatever its game. Row triggers still fire (no TRUNCATE)."""
    count = _execute("DELETE FROM leaderboard;")
    logger.info("Cleared %s leaderboard rows", count)
    return count
