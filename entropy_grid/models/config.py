"""Simulation tuning knobs."""

from pydantic import BaseModel, Field


class SimulationConfig(BaseModel):
    """Configuration for the simulation clock, economy and win/loss thresholds."""

    initial_budget: int = Field(ge=0, default=1000)
    node_count: int = Field(ge=0, default=40)
    grid_size: int = Field(ge=1, default=20)

    sensor_cost: int = 100
    link_cost: int = 50
    repair_cost: int = 50

    failure_probability: float = Field(ge=0, le=1, default=0.001)  # Per active node, per tick
    game_over_entropy: float = 9.0      # Strictly above this loses
    victory_entropy: float = 7.0        # At or below this, after victory_time_seconds, wins
    victory_time_seconds: int = 600
    victory_hold_seconds: int = 0       # 0 = instantaneous check at the tick

    event_log_limit: int = Field(ge=1, default=20)
    tick_interval_seconds: float = Field(gt=0, default=1.0)
    max_game_speed: int = Field(ge=1, default=10)
