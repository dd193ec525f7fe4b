from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
import redis

from command_history.api.deps import get_config, get_history, get_redis
from command_history.api.models import (
    CommandListResponse,
    EventListResponse,
    ExecuteRequest,
    HistorySnapshot,
    StreamedEvent,
    TraverseRequest,
)
from command_history.config import HistoryConfig
from command_history.core.errors import HistoryBusyError
from command_history.engine import CommandHistory
from command_history.runtime.registry import command_factory, registered_commands
from command_history.websocket_hub import hub

router = APIRouter()


async def _updated(history: CommandHistory) -> HistorySnapshot:
    snapshot = HistorySnapshot.from_history(history)
    await hub.broadcast({"type": "history_updated", **snapshot.model_dump()})
    return snapshot


@router.websocket("/ws/history")
async def history_updates_ws(websocket: WebSocket) -> None:
    await hub.connect(websocket)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(websocket)
    except Exception:
        await hub.disconnect(websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/history", response_model=HistorySnapshot)
async def get_history_route(history: CommandHistory = Depends(get_history)) -> HistorySnapshot:
    return HistorySnapshot.from_history(history)


@router.get("/history/commands", response_model=CommandListResponse)
async def list_commands_route() -> CommandListResponse:
    return CommandListResponse(commands=registered_commands())


@router.post("/history/execute", response_model=HistorySnapshot)
async def execute_route(payload: ExecuteRequest, history: CommandHistory = Depends(get_history)) -> HistorySnapshot:
    try:
        factory = command_factory(payload.command)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    try:
        await history.execute(factory, **payload.args)
    except HistoryBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except TypeError as e:
        # Wrong arguments for the factory, or it did not produce a Command.
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return await _updated(history)


@router.post("/history/undo", response_model=HistorySnapshot)
async def undo_route(payload: TraverseRequest | None = None, history: CommandHistory = Depends(get_history)) -> HistorySnapshot:
    levels = payload.levels if payload is not None else 1
    try:
        await history.undo(levels)
    except HistoryBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return await _updated(history)


@router.post("/history/redo", response_model=HistorySnapshot)
async def redo_route(payload: TraverseRequest | None = None, history: CommandHistory = Depends(get_history)) -> HistorySnapshot:
    levels = payload.levels if payload is not None else 1
    try:
        await history.redo(levels)
    except HistoryBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return await _updated(history)


@router.post("/history/pop", response_model=HistorySnapshot)
async def pop_route(history: CommandHistory = Depends(get_history)) -> HistorySnapshot:
    try:
        history.pop()
    except HistoryBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return await _updated(history)


@router.delete("/history", response_model=HistorySnapshot)
async def clear_route(history: CommandHistory = Depends(get_history)) -> HistorySnapshot:
    try:
        history.clear()
    except HistoryBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return await _updated(history)


@router.post("/history/barrier", response_model=HistorySnapshot)
async def barrier_route(history: CommandHistory = Depends(get_history)) -> HistorySnapshot:
    history.coalescence_barrier()
    return HistorySnapshot.from_history(history)


@router.get("/history/events", response_model=EventListResponse)
async def list_events_route(
    count: int = 50,
    config: HistoryConfig = Depends(get_config),
    r: redis.Redis = Depends(get_redis),
) -> EventListResponse:
    if not config.events_stream:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event stream not configured")

    # Newest first from Redis; return oldest first.
    entries = r.xrevrange(config.events_stream, count=count) if count > 0 else []
    events = [
        StreamedEvent(id=str(entry_id), type=fields["type"], description=fields["description"], ts=fields["ts"])
        for entry_id, fields in reversed(entries)
    ]
    return EventListResponse(stream_key=config.events_stream, events=events)
