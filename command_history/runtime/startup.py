from __future__ import annotations

from collections.abc import Mapping
import logging

from command_history.config import HistoryConfig
from command_history.core.commands import CommandFactory
from command_history.engine import CommandHistory
from command_history.infra.redis_client import create_redis
from command_history.runtime.registry import register_commands
from command_history.runtime.singleton import init_history
from command_history.sinks import EventSink, LoggingSink, RedisStreamSink
from command_history.websocket_hub import WebSocketSink, hub

logger = logging.getLogger(__name__)


def init_history_for_app(
    config: HistoryConfig | None = None,
    *,
    commands: Mapping[str, CommandFactory] | None = None,
) -> CommandHistory:
    cfg = config or HistoryConfig.from_env()

    if commands:
        register_commands(commands)
        logger.info("Registered commands: %s", ", ".join(sorted(commands)))

    sinks: list[EventSink] = [LoggingSink(), WebSocketSink(hub=hub)]
    if cfg.events_stream:
        sinks.append(RedisStreamSink(r=create_redis(cfg.redis_url), stream_key=cfg.events_stream))
        logger.info("Publishing history events to Redis stream %s", cfg.events_stream)

    return init_history(config=cfg, sinks=sinks)
