import pytest
import fakeredis

from wof_core.events import EventBus, GameEvent
from wof_core.models import GameState
from wof_core.state import GameStore
from wof_core.turn_state import TurnStateMachine


@pytest.fixture(scope="session")
def redis_client():
    return fakeredis.FakeStrictRedis(decode_responses=True)


@pytest.fixture(autouse=True)
def _clean_redis(redis_client):
    # Clear DB before each test for isolation
    redis_client.flushdb()
    yield
    redis_client.flushdb()


@pytest.fixture
def store(redis_client):
    return GameStore(client=redis_client, prefix="test")


class EventLog:
    """Subscribes to every event kind on a bus and remembers what was emitted."""

    def __init__(self, bus: EventBus):
        self.bus = bus
        self.entries = []
        for kind in GameEvent:
            bus.subscribe(kind, lambda payload, kind=kind: self.entries.append((kind, payload)))

    def kinds(self):
        return [kind for kind, _ in self.entries]

    def of(self, kind):
        return [payload for k, payload in self.entries if k == kind]

    def clear(self):
        self.entries.clear()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def events(bus):
    return EventLog(bus)


@pytest.fixture
def make_machine(bus):
    def _make(phrase: str = "WRONG HOLE BUDDY", category: str = "Test", **fields) -> TurnStateMachine:
        return TurnStateMachine.from_state(GameState(phrase=phrase, category=category, **fields), bus)
    return _make
