from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from fastapi import WebSocket

from command_history.core.events import HistoryEvent


class HistoryWebSocketHub:
    """In-process WebSocket fan-out for history lifecycle events.

    Contract:
      - register a connection via `connect(websocket)`.
      - push lightweight events with `broadcast(payload)`.

    Payloads should be JSON-serializable dicts.

    Connections are only touched from the event loop thread and never across an await,
    so the set needs no lock.
    """

    def __init__(self) -> None:
        self._conns: set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._conns.add(websocket)

    async def disconnect(self, websocket: WebSocket) -> None:
        self._conns.discard(websocket)

    async def broadcast(self, payload: dict[str, object]) -> None:
        conns = list(self._conns)
        if not conns:
            return

        dead: list[WebSocket] = []
        for ws in conns:
            try:
                await ws.send_json(payload)
            except Exception:
                dead.append(ws)

        for ws in dead:
            self._conns.discard(ws)


@dataclass(slots=True)
class WebSocketSink:
    """Event sink that schedules a hub broadcast for every lifecycle event.

    History operations emit synchronously, so the broadcast runs as a task on the running loop.
    """

    hub: HistoryWebSocketHub
    _pending: set[asyncio.Task[None]] = field(default_factory=set)

    def emit(self, event: HistoryEvent) -> None:
        task = asyncio.get_running_loop().create_task(self.hub.broadcast(event.as_payload()))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


hub = HistoryWebSocketHub()
