"""Player and clock actions — the closed set of inputs to the reducer."""

from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from entropy_grid.models.world import Entity, Link


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class Initialize(_Action):
    """Start a session from freshly generated nodes and links."""

    kind: Literal["initialize"] = "initialize"
    nodes: List[Entity]
    links: List[Link]


class AdvanceTime(_Action):
    """One-second tick delivered by the clock."""

    kind: Literal["advance_time"] = "advance_time"


class PlaceSensor(_Action):
    kind: Literal["place_sensor"] = "place_sensor"
    node_id: int


class AddLink(_Action):
    kind: Literal["add_link"] = "add_link"
    source: int
    target: int


class RepairNode(_Action):
    kind: Literal["repair_node"] = "repair_node"
    node_id: int


class TogglePause(_Action):
    kind: Literal["toggle_pause"] = "toggle_pause"


class SetSpeed(_Action):
    """Tick cadence multiplier; does not change per-tick semantics."""

    kind: Literal["set_speed"] = "set_speed"
    speed: int


class Load(_Action):
    """Replace the state with a persisted snapshot (as its JSON dump)."""

    kind: Literal["load"] = "load"
    snapshot: dict


Action = Annotated[
    Union[
        Initialize,
        AdvanceTime,
        PlaceSensor,
        AddLink,
        RepairNode,
        TogglePause,
        SetSpeed,
        Load,
    ],
    Field(discriminator="kind"),
]
