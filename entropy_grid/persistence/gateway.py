"""
Persistence Gateway — the narrow save/load contract the session depends on.

Absence of a saved game is a normal outcome (load() returns None). Storage
and transport failures are raised as PersistenceError so callers can report
them; they never touch the in-memory game state.
"""

from typing import Optional, Protocol

from entropy_grid.models.world import GameState


class PersistenceError(Exception):
    """Raised when a snapshot cannot be saved or loaded."""
    pass


class SnapshotDecodeError(PersistenceError):
    """Raised when a stored record is not a valid GameState."""
    pass


class PersistenceGateway(Protocol):
    """Protocol for snapshot storage — pluggable backend."""

    def save(self, state: GameState) -> None: ...

    def load(self) -> Optional[GameState]: ...
