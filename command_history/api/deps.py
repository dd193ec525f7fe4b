from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends
import redis

from command_history.config import HistoryConfig
from command_history.engine import CommandHistory
from command_history.infra.redis_client import create_redis
from command_history.runtime.singleton import get_history as _get_history


def get_config() -> HistoryConfig:
    return HistoryConfig.from_env()


def get_history() -> CommandHistory:
    return _get_history()


def get_redis(config: HistoryConfig = Depends(get_config)) -> Generator[redis.Redis, None, None]:
    """Short-lived client for reading the event stream back out."""

    client = create_redis(config.redis_url)
    try:
        yield client
    finally:
        client.close()
