"""
Live change feed for the leaderboard table (Postgres LISTEN/NOTIFY).

One listener thread per process receives the trigger payloads installed by
`db.init_db()` and keeps them in a bounded, numbered backlog. Each browser
session remembers the last number it applied and asks for what came after.
If a session has fallen out of the backlog (or the listener had to
reconnect) it gets None back and should do a full refresh instead.
"""

from __future__ import annotations

import json
import logging
import select
import threading
from collections import deque
from typing import Any, Deque, Dict, Optional, Tuple

import psycopg2
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT
from sqlalchemy.engine import Engine

import config
from leaderboard.db import CHANNEL
from leaderboard.models import DELETE, INSERT, UPDATE, ChangeEvent, Entry

logger = logging.getLogger(__name__)

RECONNECT_DELAY = 5.0


def parse_notification(payload: str) -> ChangeEvent:
    """Turn a trigger payload into a ChangeEvent. Raises ValueError if malformed."""
    try:
        data = json.loads(payload)
        op = data["op"]
        row = data["row"]
    except (TypeError, KeyError, json.JSONDecodeError) as exc:
        raise ValueError(f"Malformed change payload: {payload!r}") from exc
    if op not in (INSERT, UPDATE, DELETE):
        raise ValueError(f"Unknown change operation: {op!r}")
    try:
        return ChangeEvent(op=op, entry=Entry.from_row(row))
    except (TypeError, KeyError) as exc:
        raise ValueError(f"Malformed change row: {row!r}") from exc


class ChangeFeed:
    def __init__(
        self,
        connect_kwargs: Optional[Dict[str, Any]] = None,
        channel: str = CHANNEL,
        backlog: int = config.FEED_BACKLOG,
        poll_timeout: float = 1.0,
    ):
        self.connect_kwargs = connect_kwargs or {}
        self.channel = channel
        self.poll_timeout = poll_timeout

        self._events: Deque[Tuple[int, ChangeEvent]] = deque(maxlen=backlog)
        self._seq = 0
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_engine(cls, engine: Engine, **kwargs) -> "ChangeFeed":
        url = engine.url
        connect_kwargs = url.translate_connect_args(username="user", database="dbname")
        connect_kwargs.update(url.query)
        return cls(connect_kwargs, **kwargs)

    @property
    def latest_seq(self) -> int:
        with self._lock:
            return self._seq

    # ----------------------------
    # Backlog
    # ----------------------------

    def publish(self, event: ChangeEvent) -> int:
        with self._lock:
            self._seq += 1
            self._events.append((self._seq, event))
            return self._seq

    def reset(self) -> None:
        """Drop the backlog; every session will be told to refresh."""
        with self._lock:
            self._events.clear()
            self._seq += 1

    def events_since(self, seq: int) -> Tuple[int, Optional[Tuple[ChangeEvent, ...]]]:
        """Return (latest_seq, events after `seq`), or (latest_seq, None) if `seq` is too old."""
        with self._lock:
            if seq == self._seq:
                return self._seq, ()
            oldest = self._events[0][0] if self._events else self._seq + 1
            if seq > self._seq or seq + 1 < oldest:
                return self._seq, None
            return self._seq, tuple(e for s, e in self._events if s > seq)

    # ----------------------------
    # Listener
    # ----------------------------

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="leaderboard-feed", daemon=True)
        self._thread.start()
        logger.info("Change feed listening on %s", self.channel)

    def close(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.poll_timeout * 2)
            self._thread = None
        logger.info("Change feed closed")

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self._listen()
            except Exception:
                logger.exception("Change feed listener stopped; reconnecting in %ss", RECONNECT_DELAY)
                self.reset()
                self._stop.wait(RECONNECT_DELAY)

    def _listen(self) -> None:
        conn = psycopg2.connect(**self.connect_kwargs)
        try:
            conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
            with conn.cursor() as cur:
                cur.execute(f"LISTEN {self.channel};")
            # Anything committed while we weren't listening is gone from the feed
            self.reset()
            while not self._stop.is_set():
                if select.select([conn], [], [], self.poll_timeout) == ([], [], []):
                    continue
                conn.poll()
                while conn.notifies:
                    self.handle_payload(conn.notifies.pop(0).payload)
        finally:
            conn.close()

    def handle_payload(self, payload: str) -> None:
        try:
            event = parse_notification(payload)
        except ValueError:
            logger.warning("Ignoring change notification; sessions will refresh", exc_info=True)
            self.reset()
            return
        self.publish(event)
