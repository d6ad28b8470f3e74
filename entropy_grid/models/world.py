"""Game world — entities, links and the single GameState aggregate."""

from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EntityType(str, Enum):
    POWER_PLANT = "power-plant"
    SUBSTATION = "substation"
    RESIDENTIAL = "residential"


class EntityStatus(str, Enum):
    ACTIVE = "active"
    DEGRADED = "degraded"
    FAILED = "failed"


class ObservedStatus(str, Enum):
    """What the disorder engine sees: true status, or UNKNOWN without a sensor."""
    ACTIVE = "active"
    DEGRADED = "degraded"
    FAILED = "failed"
    UNKNOWN = "unknown"


class Phase(str, Enum):
    SETUP = "setup"         # No entities yet
    RUNNING = "running"
    PAUSED = "paused"
    TERMINAL = "terminal"   # game_over or victory, absorbing


class Entity(BaseModel):
    """A simulated infrastructure unit placed on the grid."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0)
    name: str
    type: EntityType
    x: int
    y: int
    status: EntityStatus = EntityStatus.ACTIVE  # Ground truth, sensor or not
    has_sensor: bool = False

    @property
    def position(self) -> Tuple[int, int]:
        return (self.x, self.y)


class Link(BaseModel):
    """Undirected grid connection between two entities."""

    model_config = ConfigDict(frozen=True)

    source: int
    target: int

    @model_validator(mode="after")
    def _no_self_link(self) -> "Link":
        if self.source == self.target:
            raise ValueError(f"link cannot connect node {self.source} to itself")
        return self

    @property
    def key(self) -> FrozenSet[int]:
        """Unordered pair used for duplicate detection."""
        return frozenset((self.source, self.target))


class EventLogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: int = Field(ge=0)
    message: str
    type: str = "info"      # "info" | "warning" | "critical"


class GameState(BaseModel):
    """
    The authoritative game state. Owned by the simulation session and only
    ever replaced, never mutated, by the reducer.
    """

    model_config = ConfigDict(frozen=True)

    nodes: List[Entity] = []
    links: List[Link] = []
    entropy: float = Field(ge=0, le=10, default=0.0)
    budget: int = Field(ge=0, default=1000)
    time_elapsed: int = Field(ge=0, default=0)
    is_playing: bool = False
    game_speed: int = Field(ge=1, default=1)
    game_over: bool = False
    victory: bool = False
    stable_seconds: int = Field(ge=0, default=0)  # Consecutive ticks at or under the victory threshold
    event_log: List[EventLogEntry] = []             # Most recent first

    @model_validator(mode="after")
    def _terminal_flags_exclusive(self) -> "GameState":
        if self.game_over and self.victory:
            raise ValueError("game_over and victory cannot both be set")
        return self

    @model_validator(mode="after")
    def _graph_consistent(self) -> "GameState":
        ids = set()
        cells = set()
        for node in self.nodes:
            if node.id in ids:
                raise ValueError(f"duplicate node id {node.id}")
            if node.position in cells:
                raise ValueError(f"two nodes share cell {node.position}")
            ids.add(node.id)
            cells.add(node.position)
        for link in self.links:
            if link.source not in ids or link.target not in ids:
                raise ValueError(
                    f"link {link.source}-{link.target} references an unknown node"
                )
        return self

    @property
    def phase(self) -> Phase:
        if self.game_over or self.victory:
            return Phase.TERMINAL
        if not self.nodes:
            return Phase.SETUP
        return Phase.RUNNING if self.is_playing else Phase.PAUSED

    def get_node(self, node_id: int) -> Optional[Entity]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_counts(self) -> Dict[str, int]:
        """Per-status entity counts plus how many carry a sensor."""
        counts = {status.value: 0 for status in EntityStatus}
        sensored = 0
        for node in self.nodes:
            counts[node.status.value] += 1
            if node.has_sensor:
                sensored += 1
        counts["sensored"] = sensored
        counts["total"] = len(self.nodes)
        return counts
