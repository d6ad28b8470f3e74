"""Entropy Grid data models."""

from entropy_grid.models.actions import (
    Action,
    AddLink,
    AdvanceTime,
    Initialize,
    Load,
    PlaceSensor,
    RepairNode,
    SetSpeed,
    TogglePause,
)
from entropy_grid.models.config import SimulationConfig
from entropy_grid.models.world import (
    Entity,
    EntityStatus,
    EntityType,
    EventLogEntry,
    GameState,
    Link,
    ObservedStatus,
    Phase,
)

__all__ = [
    "Action",
    "AddLink",
    "AdvanceTime",
    "Entity",
    "EntityStatus",
    "EntityType",
    "EventLogEntry",
    "GameState",
    "Initialize",
    "Link",
    "Load",
    "ObservedStatus",
    "Phase",
    "PlaceSensor",
    "RepairNode",
    "SetSpeed",
    "SimulationConfig",
    "TogglePause",
]
