"""SQLite-backed play counts per (context, track).

The public API is async; each call opens a fresh connection and runs the
blocking sqlite3 work in a thread via ``asyncio.to_thread``.
"""
import asyncio
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, List, TypeVar

from trueshuffle.core.errors import StoreFault
from trueshuffle.models.play_count import ContextStats, PlayCountRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS play_counts (
    context_id TEXT NOT NULL,
    track_id TEXT NOT NULL,
    play_count INTEGER NOT NULL DEFAULT 0,
    last_played TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (context_id, track_id)
);
CREATE INDEX IF NOT EXISTS idx_context_id ON play_counts(context_id);
CREATE INDEX IF NOT EXISTS idx_play_count ON play_counts(context_id, play_count, last_played);
"""

# NULLs sort first under ASC in SQLite, so never-played tracks lead ties.
_LEAST_PLAYED_ORDER = "ORDER BY play_count ASC, last_played ASC, track_id ASC"


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _row_to_record(row: sqlite3.Row) -> PlayCountRecord:
    last = row["last_played"]
    return PlayCountRecord(
        context_id=row["context_id"],
        track_id=row["track_id"],
        play_count=int(row["play_count"]),
        last_played=datetime.fromisoformat(last) if last else None,
    )


class PlayCountStore:
    """Persistent (context_id, track_id) -> play_count, last_played."""

    def __init__(self, db_path: Path, clock: Callable[[], str] = _utcnow) -> None:
        self._db_path = Path(db_path)
        self._clock = clock

    async def initialize(self) -> None:
        await self._run(self._initialize_sync)

    async def get(self, context_id: str, track_id: str) -> int:
        """Play count for a track; 0 when there is no record."""
        return await self._run(self._get_sync, context_id, track_id)

    async def increment(self, context_id: str, track_id: str) -> int:
        """Atomically add one play and stamp last_played. Returns the new count."""
        return await self._run(self._increment_sync, context_id, track_id)

    async def list_by_context(self, context_id: str) -> List[PlayCountRecord]:
        """All records, least played first (then oldest last_played, never-played first)."""
        return await self._run(self._list_by_context_sync, context_id)

    async def least_played(self, context_id: str) -> List[PlayCountRecord]:
        """Every record sharing the minimum play_count for the context."""
        return await self._run(self._least_played_sync, context_id)

    async def recently_touched(self, context_id: str, limit: int) -> List[PlayCountRecord]:
        """Played records, most recently played first."""
        return await self._run(self._recently_touched_sync, context_id, limit)

    async def reset_all(self) -> int:
        """Zero every count and clear timestamps across all contexts. Returns rows affected."""
        return await self._run(self._reset_all_sync)

    async def sync(self, context_id: str, track_ids: Iterable[str]) -> int:
        """Insert unseen tracks at count 0, all-or-nothing. Returns rows inserted."""
        return await self._run(self._sync_sync, context_id, list(track_ids))

    async def stats(self, context_id: str) -> ContextStats:
        return await self._run(self._stats_sync, context_id)

    async def _run(self, fn: Callable[..., T], *args) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except (sqlite3.Error, OSError) as e:
            logger.error("Play-count store %s failed: %s", fn.__name__.strip("_").removesuffix("_sync"), e)
            raise StoreFault(f"Play-count store failure: {e}") from e

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    def _initialize_sync(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            conn.executescript(_SCHEMA)
        finally:
            conn.close()
        logger.info("Play-count store ready at %s", self._db_path)

    def _get_sync(self, context_id: str, track_id: str) -> int:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT play_count FROM play_counts WHERE context_id = ? AND track_id = ?",
                (context_id, track_id),
            ).fetchone()
        finally:
            conn.close()
        return int(row["play_count"]) if row else 0

    def _increment_sync(self, context_id: str, track_id: str) -> int:
        now = self._clock()
        conn = self._connect()
        try:
            with conn:
                conn.execute("BEGIN IMMEDIATE")
                conn.execute(
                    """
                    INSERT INTO play_counts (context_id, track_id, play_count, last_played)
                    VALUES (?, ?, 1, ?)
                    ON CONFLICT(context_id, track_id)
                    DO UPDATE SET play_count = play_count + 1, last_played = excluded.last_played
                    """,
                    (context_id, track_id, now),
                )
                row = conn.execute(
                    "SELECT play_count FROM play_counts WHERE context_id = ? AND track_id = ?",
                    (context_id, track_id),
                ).fetchone()
        finally:
            conn.close()
        return int(row["play_count"])

    def _list_by_context_sync(self, context_id: str) -> List[PlayCountRecord]:
        conn = self._connect()
        try:
            rows = conn.execute(
                f"SELECT * FROM play_counts WHERE context_id = ? {_LEAST_PLAYED_ORDER}",
                (context_id,),
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_record(r) for r in rows]

    def _least_played_sync(self, context_id: str) -> List[PlayCountRecord]:
        conn = self._connect()
        try:
            rows = conn.execute(
                f"""
                SELECT * FROM play_counts
                WHERE context_id = ?
                  AND play_count = (SELECT MIN(play_count) FROM play_counts WHERE context_id = ?)
                {_LEAST_PLAYED_ORDER}
                """,
                (context_id, context_id),
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_record(r) for r in rows]

    def _recently_touched_sync(self, context_id: str, limit: int) -> List[PlayCountRecord]:
        conn = self._connect()
        try:
            rows = conn.execute(
                """
                SELECT * FROM play_counts
                WHERE context_id = ? AND last_played IS NOT NULL
                ORDER BY last_played DESC
                LIMIT ?
                """,
                (context_id, limit),
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_record(r) for r in rows]

    def _reset_all_sync(self) -> int:
        conn = self._connect()
        try:
            with conn:
                cursor = conn.execute("UPDATE play_counts SET play_count = 0, last_played = NULL")
                affected = int(cursor.rowcount or 0)
        finally:
            conn.close()
        logger.info("Reset play counts (%d rows)", affected)
        return affected

    def _sync_sync(self, context_id: str, track_ids: List[str]) -> int:
        if not track_ids:
            return 0
        conn = self._connect()
        try:
            # One transaction: any failing insert rolls back the whole batch.
            with conn:
                conn.execute("BEGIN IMMEDIATE")
                before = conn.total_changes
                conn.executemany(
                    "INSERT INTO play_counts (context_id, track_id, play_count) VALUES (?, ?, 0) "
                    "ON CONFLICT(context_id, track_id) DO NOTHING",
                    [(context_id, track_id) for track_id in track_ids],
                )
                inserted = conn.total_changes - before
        finally:
            conn.close()
        return inserted

    def _stats_sync(self, context_id: str) -> ContextStats:
        conn = self._connect()
        try:
            row = conn.execute(
                """
                SELECT COUNT(*) AS total_tracks,
                       MIN(play_count) AS min_plays,
                       MAX(play_count) AS max_plays,
                       AVG(play_count) AS avg_plays,
                       SUM(play_count) AS total_plays
                FROM play_counts WHERE context_id = ?
                """,
                (context_id,),
            ).fetchone()
        finally:
            conn.close()
        return ContextStats(
            total_tracks=int(row["total_tracks"] or 0),
            min_plays=int(row["min_plays"] or 0),
            max_plays=int(row["max_plays"] or 0),
            avg_plays=float(row["avg_plays"] or 0.0),
            total_plays=int(row["total_plays"] or 0),
        )
