"""
Simulation Session — owns the authoritative GameState and the tick clock.

Dispatch is synchronous: one action resolves completely before the next.
The tick task exists only while the game is RUNNING. It is started when a
dispatch enters RUNNING and cancelled when one leaves it (pause, terminal
tick, load), and on close().

Save and load hand the gateway call to a worker thread so ticking carries on
while a request is in flight; a loaded snapshot lands as one Load action.
"""

import asyncio
import logging
import random
from typing import Optional

from entropy_grid.generator.graph import generate
from entropy_grid.models.actions import Action, AdvanceTime, Initialize, Load
from entropy_grid.models.config import SimulationConfig
from entropy_grid.models.world import GameState, Phase
from entropy_grid.persistence.gateway import PersistenceError, PersistenceGateway
from entropy_grid.simulation.reducer import initial_state, transition

logger = logging.getLogger(__name__)


class SimulationSession:
    """
    One play session.

    States (via state.phase):
      SETUP → RUNNING ⇄ PAUSED → TERMINAL
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        gateway: Optional[PersistenceGateway] = None,
        seed: Optional[int] = None,
    ):
        self.config = config or SimulationConfig()
        self.gateway = gateway
        self.rng = random.Random(seed)
        self._state = initial_state(self.config)
        self._ticker: Optional[asyncio.Task] = None

    @property
    def state(self) -> GameState:
        """Current game state (immutable)."""
        return self._state

    @property
    def ticking(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    def dispatch(self, action: Action) -> bool:
        """
        Apply one action to the session state.
        Returns False when the reducer rejected it or it had no effect.
        """
        previous = self._state
        self._state = transition(previous, action, self.rng, self.config)
        self._sync_ticker()
        return self._state is not previous

    def new_game(self, node_count: Optional[int] = None) -> GameState:
        """Generate a fresh city and initialize the session with it."""
        count = self.config.node_count if node_count is None else node_count
        graph = generate(count, rng=self.rng, grid_size=self.config.grid_size)
        self.dispatch(Initialize(nodes=graph.nodes, links=graph.links))
        logger.info(
            "New game: %d entities, %d links, entropy %.2f",
            len(graph.nodes), len(graph.links), self._state.entropy,
        )
        return self._state

    # --- Tick clock ---

    def tick_interval(self) -> float:
        return self.config.tick_interval_seconds / self._state.game_speed

    def _sync_ticker(self) -> None:
        """Start or stop the tick task to match the current phase."""
        running = self._state.phase == Phase.RUNNING
        if running and not self.ticking:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return  # No event loop: ticks are dispatched by the caller
            self._ticker = loop.create_task(self._tick_forever())
        elif not running and self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    async def _tick_forever(self) -> None:
        while self._state.phase == Phase.RUNNING:
            await asyncio.sleep(self.tick_interval())
            self.dispatch(AdvanceTime())

    async def close(self) -> None:
        """Tear down the tick task. No further ticks are delivered."""
        ticker, self._ticker = self._ticker, None
        if ticker is None:
            return
        ticker.cancel()
        try:
            await ticker
        except asyncio.CancelledError:
            pass

    async def __aenter__(self) -> "SimulationSession":
        self._sync_ticker()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # --- Persistence ---

    def _require_gateway(self) -> PersistenceGateway:
        if self.gateway is None:
            raise PersistenceError("No persistence gateway configured")
        return self.gateway

    async def save(self) -> None:
        """Persist the current snapshot. Raises PersistenceError on failure."""
        gateway = self._require_gateway()
        snapshot = self._state
        try:
            await asyncio.to_thread(gateway.save, snapshot)
        except PersistenceError as e:
            logger.warning("Save failed: %s", e)
            raise

    async def load(self) -> bool:
        """
        Restore the saved snapshot, paused. Returns False when no save exists.
        Raises PersistenceError on failure, leaving the current state untouched.
        """
        gateway = self._require_gateway()
        try:
            snapshot = await asyncio.to_thread(gateway.load)
        except PersistenceError as e:
            logger.warning("Load failed: %s", e)
            raise

        if snapshot is None:
            logger.info("No save game found")
            return False

        self.dispatch(Load(snapshot=snapshot.model_dump(mode="json")))
        logger.info("Loaded snapshot at t=%ds", self._state.time_elapsed)
        return True
