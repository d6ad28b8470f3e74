"""
Snapshot Store — local SQLite persistence for game snapshots.

One row per save slot. Saving a slot overwrites the previous snapshot; the
stored JSON is exactly the GameState aggregate.

The session calls save/load from worker threads, so every use of the shared
connection is serialized through one lock.
"""

import logging
import sqlite3
import threading
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError

from entropy_grid.models.world import GameState
from entropy_grid.persistence.gateway import PersistenceError, SnapshotDecodeError

logger = logging.getLogger(__name__)

DEFAULT_SLOT = "savegame"


class SnapshotStore:
    """
    Slot-keyed snapshot store.
    Prototype: SQLite, in memory unless a path is given.
    """

    def __init__(self, db_path: str = ":memory:", slot: str = DEFAULT_SLOT):
        self.db_path = db_path
        self.slot = slot
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        """Create the snapshots table if it doesn't exist."""
        with self._lock:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    slot TEXT PRIMARY KEY,
                    state_json TEXT NOT NULL,
                    time_elapsed INTEGER NOT NULL,
                    saved_at TEXT NOT NULL
                )
            """)
            self._conn.commit()

    def save(self, state: GameState, slot: Optional[str] = None) -> None:
        """Write the snapshot to a slot, replacing what was there."""
        slot = slot or self.slot
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT INTO snapshots (slot, state_json, time_elapsed, saved_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(slot) DO UPDATE SET
                        state_json = excluded.state_json,
                        time_elapsed = excluded.time_elapsed,
                        saved_at = excluded.saved_at
                    """,
                    (
                        slot,
                        state.model_dump_json(),
                        state.time_elapsed,
                        datetime.utcnow().isoformat(),
                    ),
                )
                self._conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Save to slot {slot!r} failed: {e}") from e
        logger.info("Saved snapshot to slot %r at t=%ds", slot, state.time_elapsed)

    def load(self, slot: Optional[str] = None) -> Optional[GameState]:
        """Read a slot. Returns None when nothing has been saved there."""
        slot = slot or self.slot
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT state_json FROM snapshots WHERE slot = ?", (slot,)
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Load from slot {slot!r} failed: {e}") from e

        if row is None:
            return None
        try:
            return GameState.model_validate_json(row["state_json"])
        except ValidationError as e:
            raise SnapshotDecodeError(f"Slot {slot!r} holds an invalid snapshot") from e

    def delete(self, slot: Optional[str] = None) -> bool:
        """Remove a slot's snapshot."""
        slot = slot or self.slot
        try:
            with self._lock:
                cursor = self._conn.execute("DELETE FROM snapshots WHERE slot = ?", (slot,))
                self._conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Delete of slot {slot!r} failed: {e}") from e
        return cursor.rowcount > 0

    def slots(self) -> List[str]:
        """Names of all occupied slots."""
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT slot FROM snapshots ORDER BY slot"
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Listing slots failed: {e}") from e
        return [r["slot"] for r in rows]

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()
