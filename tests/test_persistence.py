"""Tests for the snapshot store and the remote snapshot gateway."""

import json
import threading

import httpx
import pytest

from entropy_grid.generator.graph import generate
from entropy_grid.models.actions import Initialize, PlaceSensor
from entropy_grid.persistence.gateway import PersistenceError, SnapshotDecodeError
from entropy_grid.persistence.remote import RemoteSnapshotGateway
from entropy_grid.persistence.store import SnapshotStore
from entropy_grid.simulation.reducer import initial_state, transition


def _make_state():
    graph = generate(40, seed=5)
    state = transition(initial_state(), Initialize(nodes=graph.nodes, links=graph.links))
    return transition(state, PlaceSensor(node_id=1))


class TestSnapshotStore:
    def setup_method(self):
        self.store = SnapshotStore(db_path=":memory:")

    def teardown_method(self):
        self.store.close()

    def test_load_empty_returns_none(self):
        assert self.store.load() is None

    def test_save_and_load(self):
        state = _make_state()
        self.store.save(state)
        loaded = self.store.load()
        assert loaded == state

    def test_save_overwrites_slot(self):
        state = _make_state()
        self.store.save(state)
        later = state.model_copy(update={"time_elapsed": 77})
        self.store.save(later)
        assert self.store.load().time_elapsed == 77
        assert self.store.slots() == ["savegame"]

    def test_named_slots(self):
        state = _make_state()
        self.store.save(state, slot="autosave")
        assert self.store.load() is None
        assert self.store.load(slot="autosave") == state

    def test_delete(self):
        self.store.save(_make_state())
        assert self.store.delete() is True
        assert self.store.delete() is False
        assert self.store.load() is None

    def test_corrupt_record_raises_decode_error(self):
        self.store._conn.execute(
            "INSERT INTO snapshots (slot, state_json, time_elapsed, saved_at) "
            "VALUES ('savegame', '{\"budget\": -1}', 0, 'now')"
        )
        with pytest.raises(SnapshotDecodeError):
            self.store.load()

    def test_closed_connection_raises_persistence_error(self):
        store = SnapshotStore()
        store.close()
        with pytest.raises(PersistenceError):
            store.save(_make_state())
        with pytest.raises(PersistenceError):
            store.load()

    def test_slots_on_closed_connection_raises(self):
        store = SnapshotStore()
        store.close()
        with pytest.raises(PersistenceError):
            store.slots()

    def test_concurrent_save_and_load(self):
        state = _make_state()
        self.store.save(state)
        errors = []

        def worker(index):
            try:
                for _ in range(25):
                    if index % 2:
                        self.store.save(state, slot=f"slot_{index}")
                    else:
                        assert self.store.load() == state
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(self.store.slots()) == 5

    def test_file_backed_store_survives_reopen(self, tmp_path):
        path = str(tmp_path / "saves.db")
        state = _make_state()
        first = SnapshotStore(db_path=path)
        first.save(state)
        first.close()

        second = SnapshotStore(db_path=path)
        assert second.load() == state
        second.close()


class _FakeKeyValueStore:
    """In-memory stand-in for the remote JSON store."""

    def __init__(self):
        self.data = {}
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = request.url.path
        if request.method == "PUT":
            self.data[key] = json.loads(request.content)
            return httpx.Response(200, json=self.data[key])
        if request.method == "GET":
            # The store answers JSON null for a missing key
            body = json.dumps(self.data.get(key)).encode()
            return httpx.Response(200, content=body, headers={"Content-Type": "application/json"})
        return httpx.Response(405)


class TestRemoteSnapshotGateway:
    def setup_method(self):
        self.backend = _FakeKeyValueStore()
        client = httpx.Client(transport=httpx.MockTransport(self.backend.handler))
        self.gateway = RemoteSnapshotGateway(
            "https://grid.example.com/", auth_token="secret", client=client
        )

    def test_url(self):
        assert self.gateway.url == "https://grid.example.com/savegame.json"

    def test_load_missing_returns_none(self):
        assert self.gateway.load() is None

    def test_save_and_load(self):
        state = _make_state()
        self.gateway.save(state)
        assert self.gateway.load() == state
        put = self.backend.requests[0]
        assert put.method == "PUT"
        assert put.url.params["auth"] == "secret"

    def test_server_error_raises(self):
        client = httpx.Client(transport=httpx.MockTransport(
            lambda request: httpx.Response(503)
        ))
        gateway = RemoteSnapshotGateway("https://grid.example.com", client=client)
        with pytest.raises(PersistenceError):
            gateway.save(_make_state())
        with pytest.raises(PersistenceError):
            gateway.load()

    def test_transport_error_raises(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.Client(transport=httpx.MockTransport(refuse))
        gateway = RemoteSnapshotGateway("https://grid.example.com", client=client)
        with pytest.raises(PersistenceError):
            gateway.load()

    def test_invalid_payload_raises_decode_error(self):
        client = httpx.Client(transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"budget": "lots"})
        ))
        gateway = RemoteSnapshotGateway("https://grid.example.com", client=client)
        with pytest.raises(SnapshotDecodeError):
            gateway.load()

    def test_non_json_body_raises_decode_error(self):
        client = httpx.Client(transport=httpx.MockTransport(
            lambda request: httpx.Response(200, text="<html>oops</html>")
        ))
        gateway = RemoteSnapshotGateway("https://grid.example.com", client=client)
        with pytest.raises(SnapshotDecodeError):
            gateway.load()
