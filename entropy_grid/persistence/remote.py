"""
Remote Snapshot Gateway — saves over a remote key-value store's REST API.

Speaks the Realtime-Database style JSON interface:
  PUT {base_url}/{slot}.json   body = snapshot
  GET {base_url}/{slot}.json   -> snapshot, or JSON null when absent
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from entropy_grid.models.world import GameState
from entropy_grid.persistence.gateway import PersistenceError, SnapshotDecodeError

logger = logging.getLogger(__name__)


class RemoteSnapshotGateway:
    """Snapshot gateway backed by a remote JSON key-value store."""

    def __init__(
        self,
        base_url: str,
        slot: str = "savegame",
        auth_token: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.slot = slot
        self.auth_token = auth_token
        self._client = client or httpx.Client(timeout=timeout)

    @property
    def url(self) -> str:
        return f"{self.base_url}/{self.slot}.json"

    def _params(self) -> dict:
        return {"auth": self.auth_token} if self.auth_token else {}

    def save(self, state: GameState) -> None:
        try:
            response = self._client.put(
                self.url,
                params=self._params(),
                content=state.model_dump_json(),
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise PersistenceError(f"Save to {self.url} failed: {e}") from e
        logger.info("Saved snapshot to %s at t=%ds", self.url, state.time_elapsed)

    def load(self) -> Optional[GameState]:
        try:
            response = self._client.get(self.url, params=self._params())
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise PersistenceError(f"Load from {self.url} failed: {e}") from e
        except ValueError as e:
            raise SnapshotDecodeError(f"{self.url} returned a non-JSON body") from e

        if data is None:
            return None
        try:
            return GameState.model_validate(data)
        except ValidationError as e:
            raise SnapshotDecodeError(f"{self.url} holds an invalid snapshot") from e

    def close(self) -> None:
        self._client.close()
