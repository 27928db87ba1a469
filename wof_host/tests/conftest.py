import random

import pytest
import fakeredis

from wof_core.models import PhraseRecord, Wedge, WedgeType
from wof_core.phrases import PhraseSelector
from wof_core.state import GameStore
from wof_core.wheel import SpinDriver
from wof_host.session import GameSession

PHRASES = [PhraseRecord(phrase="BOB'S CAB", category="Test")]


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


@pytest.fixture
def make_session(store):
    """Session on a one-wedge wheel, so every spin lands on the same wedge."""

    def _make(wedge_type=WedgeType.POINTS, value=500, phrases=PHRASES, with_store=True, seed=0):
        rng = random.Random(seed)
        if wedge_type == WedgeType.POINTS:
            wedge = Wedge(id="only", type=wedge_type, value=value, label=str(value))
        else:
            wedge = Wedge(id="only", type=wedge_type, label=wedge_type.name.replace("_", " "))
        return GameSession(
            store=store if with_store else None,
            selector=PhraseSelector(phrases, rng=rng),
            driver=SpinDriver(wedges=[wedge], rng=rng),
            rng=rng,
        )

    return _make


@pytest.fixture
def session(make_session):
    s = make_session()
    s.new_game()
    return s
