"""
Entropy Grid API — FastAPI endpoints.

The presentation seam around a simulation session:
- Read-only state inspection
- Action dispatch
- New game / save / load
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from entropy_grid.models.actions import Action
from entropy_grid.models.config import SimulationConfig
from entropy_grid.persistence.gateway import PersistenceError, PersistenceGateway
from entropy_grid.persistence.store import SnapshotStore
from entropy_grid.simulation.session import SimulationSession


# --- Request/Response Models ---

class NewGameRequest(BaseModel):
    node_count: Optional[int] = Field(ge=0, default=None)


class DispatchRequest(BaseModel):
    action: Action


# --- Application Factory ---

def create_app(
    session: Optional[SimulationSession] = None,
    config: Optional[SimulationConfig] = None,
    gateway: Optional[PersistenceGateway] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    sim = session or SimulationSession(
        config=config,
        gateway=gateway or SnapshotStore(),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await sim.close()

    app = FastAPI(
        title="Entropy Grid API",
        description="Power-grid stabilization simulation",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.session = sim

    # === STATE ===

    @app.get("/state")
    def get_state():
        """Current game state snapshot."""
        return sim.state.model_dump(mode="json")

    @app.get("/state/summary")
    def get_summary():
        """Headline numbers for a HUD."""
        state = sim.state
        return {
            "phase": state.phase.value,
            "entropy": state.entropy,
            "budget": state.budget,
            "time_elapsed": state.time_elapsed,
            "game_speed": state.game_speed,
            "node_counts": state.node_counts(),
            "link_count": len(state.links),
            "ticking": sim.ticking,
        }

    @app.get("/config")
    def get_config():
        """Current simulation configuration."""
        return sim.config.model_dump()

    @app.put("/config")
    def update_config(config: SimulationConfig):
        """Replace the simulation configuration. Applies from the next action."""
        sim.config = config
        return config.model_dump()

    # === ACTIONS ===

    @app.post("/game/new")
    async def new_game(req: NewGameRequest):
        """Generate a fresh city and start paused."""
        state = sim.new_game(req.node_count)
        return state.model_dump(mode="json")

    @app.post("/dispatch")
    async def dispatch(req: DispatchRequest):
        """Apply one action. Rejected actions leave the state unchanged."""
        accepted = sim.dispatch(req.action)
        return {"accepted": accepted, "state": sim.state.model_dump(mode="json")}

    # === PERSISTENCE ===

    @app.post("/save")
    async def save_game():
        try:
            await sim.save()
        except PersistenceError as e:
            raise HTTPException(502, f"Save failed: {e}")
        return {"status": "saved", "time_elapsed": sim.state.time_elapsed}

    @app.post("/load")
    async def load_game():
        try:
            found = await sim.load()
        except PersistenceError as e:
            raise HTTPException(502, f"Load failed: {e}")
        if not found:
            raise HTTPException(404, "No save game found")
        return sim.state.model_dump(mode="json")

    return app


# Default application instance
app = create_app()
