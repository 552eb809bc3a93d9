import mongomock
import pytest
from fastapi.testclient import TestClient

from chatrelay import main
from chatrelay.services.history_store import InMemoryHistoryStore, JsonHistoryStore
from chatrelay.services.mongo_store import MongoHistoryStore
from chatrelay.services.relay_service import RelayService
from tests.stubs import StubGateway


@pytest.fixture
def gateway():
    return StubGateway()


@pytest.fixture
def memory_store():
    return InMemoryHistoryStore()


@pytest.fixture(params=["memory", "json", "mongo"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryHistoryStore()
    if request.param == "json":
        return JsonHistoryStore(tmp_path / "chats")
    return MongoHistoryStore(collection=mongomock.MongoClient()["chatrelay"]["chats"])


@pytest.fixture
def relay(gateway, memory_store):
    return RelayService(gateway, memory_store)


@pytest.fixture
def api(monkeypatch, relay):
    """TestClient bound to the app with `relay` installed (lifespan is not run)."""
    monkeypatch.setattr(main, "relay_service", relay)
    return TestClient(main.app)
