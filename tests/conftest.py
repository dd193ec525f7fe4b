from __future__ import annotations

from collections.abc import Generator

import pytest

from command_history import CommandHistory, RecordingSink
from history_support import Document


@pytest.fixture(autouse=True)
def _reset_history_singleton() -> Generator[None, None, None]:
    """Every test starts without a process-wide history or registered commands.

    The API tests initialize their own instance with test sinks before the app starts up.
    """

    from command_history.runtime.registry import reset_commands_for_tests
    from command_history.runtime.singleton import reset_history_for_tests

    reset_history_for_tests()
    reset_commands_for_tests()
    yield
    reset_history_for_tests()
    reset_commands_for_tests()


@pytest.fixture()
def doc() -> Document:
    return Document()


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def cleanups() -> list[str]:
    return []


@pytest.fixture()
def history(sink: RecordingSink, cleanups: list[str]) -> Generator[CommandHistory, None, None]:
    """History with a long coalescence window so only explicit barriers end eligibility."""

    h = CommandHistory(cleanup=lambda: cleanups.append("cleanup"), coalescence_window_ms=60_000, sinks=[sink])
    yield h
    h.close()


@pytest.fixture()
def client_and_redis():
    """FastAPI TestClient wired to a fresh history that publishes into fakeredis.

    Coalescence is disabled so no timer outlives the event loop that created it.
    """

    import fakeredis
    from fastapi.testclient import TestClient

    from command_history.api.deps import get_config, get_redis
    from command_history.config import HistoryConfig
    from command_history.main import app
    from command_history.runtime.singleton import init_history
    from command_history.sinks import RedisStreamSink
    from command_history.websocket_hub import WebSocketSink, hub

    r = fakeredis.FakeRedis(decode_responses=True)
    config = HistoryConfig(coalescence_window_ms=0, events_stream="history:events")
    history = init_history(
        config=config,
        sinks=[RedisStreamSink(r=r, stream_key="history:events"), WebSocketSink(hub=hub)],
    )

    def _override_redis() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override_redis
    app.dependency_overrides[get_config] = lambda: config
    with TestClient(app) as c:
        yield c, r, history
    app.dependency_overrides.clear()
