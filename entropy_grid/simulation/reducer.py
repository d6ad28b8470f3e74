"""
Simulation reducer — the pure transition function (state, action) -> state.

States:
  SETUP → RUNNING ⇄ PAUSED → TERMINAL (absorbing)

Behavioral Contract:
- Never mutates the incoming state; every accepted action returns a new value
- Never raises for a game action: a rejected action returns the *same* object
- Rescores entropy after every state-affecting action
- Once terminal, nodes/links/entropy/time are frozen until a new game or load
- All randomness comes from the random.Random handed in by the caller
"""

import logging
import random
from typing import Callable, Dict, List, Optional, Type, get_args

from pydantic import ValidationError

from entropy_grid.disorder.engine import score
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
    EntityStatus,
    EventLogEntry,
    GameState,
    Link,
    Phase,
)

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = SimulationConfig()


def initial_state(config: Optional[SimulationConfig] = None) -> GameState:
    """An empty SETUP state carrying the configured starting budget."""
    config = config or _DEFAULT_CONFIG
    return GameState(budget=config.initial_budget)


def _trim_log(
    entries: List[EventLogEntry], limit: int
) -> List[EventLogEntry]:
    return entries[:limit]


def _log(
    state: GameState, config: SimulationConfig, message: str
) -> List[EventLogEntry]:
    entry = EventLogEntry(time=state.time_elapsed, message=message, type="info")
    return _trim_log([entry] + list(state.event_log), config.event_log_limit)


def _reject(state: GameState, action, reason: str) -> GameState:
    logger.debug("Rejected %s: %s", type(action).__name__, reason)
    return state


def _can_afford(state: GameState, cost: int) -> bool:
    return state.budget >= cost


# --- Handlers ---

def _initialize(
    state: GameState, action: Initialize, rng: random.Random, config: SimulationConfig
) -> GameState:
    fresh = initial_state(config)
    try:
        return GameState(
            nodes=list(action.nodes),
            links=list(action.links),
            entropy=score(action.nodes),
            budget=fresh.budget,
            event_log=_log(fresh, config, "Simulation initialized."),
        )
    except ValidationError as e:
        logger.warning("Rejected initial graph: %s", e)
        return state


def _advance_time(
    state: GameState, action: AdvanceTime, rng: random.Random, config: SimulationConfig
) -> GameState:
    if state.phase != Phase.RUNNING:
        return state

    new_time = state.time_elapsed + 1
    log = list(state.event_log)

    nodes = []
    for node in state.nodes:
        if node.status == EntityStatus.ACTIVE and rng.random() < config.failure_probability:
            log.insert(0, EventLogEntry(
                time=new_time,
                message=f"Failure detected at {node.name}",
                type="critical",
            ))
            node = node.model_copy(update={"status": EntityStatus.FAILED})
        nodes.append(node)

    entropy = score(nodes)

    if entropy <= config.victory_entropy:
        stable_seconds = state.stable_seconds + 1
    else:
        stable_seconds = 0

    game_over = entropy > config.game_over_entropy
    victory = (
        not game_over
        and new_time >= config.victory_time_seconds
        and entropy <= config.victory_entropy
        and stable_seconds >= config.victory_hold_seconds
    )

    if game_over:
        log.insert(0, EventLogEntry(
            time=new_time,
            message=f"Grid collapse: entropy {entropy:.2f} exceeded {config.game_over_entropy}",
            type="critical",
        ))
    elif victory:
        log.insert(0, EventLogEntry(
            time=new_time,
            message=f"Grid stabilized at entropy {entropy:.2f}",
            type="info",
        ))

    return state.model_copy(update={
        "nodes": nodes,
        "time_elapsed": new_time,
        "entropy": entropy,
        "stable_seconds": stable_seconds,
        "game_over": game_over,
        "victory": victory,
        "event_log": _trim_log(log, config.event_log_limit),
    })


def _place_sensor(
    state: GameState, action: PlaceSensor, rng: random.Random, config: SimulationConfig
) -> GameState:
    if state.phase == Phase.TERMINAL:
        return _reject(state, action, "game has ended")
    if not _can_afford(state, config.sensor_cost):
        return _reject(state, action, "insufficient budget")
    target = state.get_node(action.node_id)
    if target is None:
        return _reject(state, action, f"no node {action.node_id}")
    if target.has_sensor:
        return _reject(state, action, f"{target.name} already has a sensor")

    nodes = [
        n.model_copy(update={"has_sensor": True}) if n.id == target.id else n
        for n in state.nodes
    ]
    return state.model_copy(update={
        "nodes": nodes,
        "budget": state.budget - config.sensor_cost,
        "entropy": score(nodes),
        "event_log": _log(state, config, f"Sensor installed at {target.name}"),
    })


def _add_link(
    state: GameState, action: AddLink, rng: random.Random, config: SimulationConfig
) -> GameState:
    if state.phase == Phase.TERMINAL:
        return _reject(state, action, "game has ended")
    if not _can_afford(state, config.link_cost):
        return _reject(state, action, "insufficient budget")
    if action.source == action.target:
        return _reject(state, action, "self-link")
    if state.get_node(action.source) is None or state.get_node(action.target) is None:
        return _reject(state, action, "unknown endpoint")

    link = Link(source=action.source, target=action.target)
    if any(existing.key == link.key for existing in state.links):
        return _reject(state, action, "link already exists")

    return state.model_copy(update={
        "links": list(state.links) + [link],
        "budget": state.budget - config.link_cost,
        "entropy": score(state.nodes),
        "event_log": _log(
            state, config, f"Link added between Node {link.source} and Node {link.target}"
        ),
    })


def _repair_node(
    state: GameState, action: RepairNode, rng: random.Random, config: SimulationConfig
) -> GameState:
    if state.phase == Phase.TERMINAL:
        return _reject(state, action, "game has ended")
    if not _can_afford(state, config.repair_cost):
        return _reject(state, action, "insufficient budget")
    target = state.get_node(action.node_id)
    if target is None:
        return _reject(state, action, f"no node {action.node_id}")
    if target.status != EntityStatus.FAILED:
        return _reject(state, action, f"{target.name} is not failed")

    nodes = [
        n.model_copy(update={"status": EntityStatus.ACTIVE}) if n.id == target.id else n
        for n in state.nodes
    ]
    return state.model_copy(update={
        "nodes": nodes,
        "budget": state.budget - config.repair_cost,
        "entropy": score(nodes),
        "event_log": _log(state, config, f"{target.name} repaired"),
    })


def _toggle_pause(
    state: GameState, action: TogglePause, rng: random.Random, config: SimulationConfig
) -> GameState:
    return state.model_copy(update={"is_playing": not state.is_playing})


def _set_speed(
    state: GameState, action: SetSpeed, rng: random.Random, config: SimulationConfig
) -> GameState:
    speed = max(1, min(config.max_game_speed, action.speed))
    if speed == state.game_speed:
        return state
    return state.model_copy(update={"game_speed": speed})


def _load(
    state: GameState, action: Load, rng: random.Random, config: SimulationConfig
) -> GameState:
    merged = state.model_dump(mode="json")
    merged.update(action.snapshot)
    merged["nodes"] = action.snapshot.get("nodes") or []
    merged["links"] = action.snapshot.get("links") or []
    merged["is_playing"] = False
    try:
        loaded = GameState.model_validate(merged)
    except ValidationError as e:
        logger.warning("Rejected snapshot: %s", e)
        return state
    return loaded.model_copy(update={"entropy": score(loaded.nodes)})


_Handler = Callable[[GameState, object, random.Random, SimulationConfig], GameState]

_HANDLERS: Dict[Type, _Handler] = {
    Initialize: _initialize,
    AdvanceTime: _advance_time,
    PlaceSensor: _place_sensor,
    AddLink: _add_link,
    RepairNode: _repair_node,
    TogglePause: _toggle_pause,
    SetSpeed: _set_speed,
    Load: _load,
}


def _check_handlers_exhaustive() -> None:
    """Every member of the Action union must have exactly one handler."""
    union = get_args(Action)[0]
    missing = [t.__name__ for t in get_args(union) if t not in _HANDLERS]
    if missing:
        raise TypeError(f"No reducer handler for action(s): {', '.join(missing)}")


_check_handlers_exhaustive()


def transition(
    state: GameState,
    action: Action,
    rng: Optional[random.Random] = None,
    config: Optional[SimulationConfig] = None,
) -> GameState:
    """
    Apply one action. Returns the next state, or `state` itself when the
    action is rejected or has no effect.
    """
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Not a simulation action: {action!r}")
    return handler(state, action, rng or random.Random(), config or _DEFAULT_CONFIG)
