from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field

from command_history.infra.redis_client import get_redis_url

DEFAULT_COALESCENCE_WINDOW_MS = 3000


class HistoryConfig(BaseModel):
    """Construction-time options for a `CommandHistory`.

    Environment variables supported by `from_env`:
    - COMMAND_HISTORY_COALESCENCE_WINDOW_MS
    - COMMAND_HISTORY_VERBOSE
    - COMMAND_HISTORY_EVENTS_STREAM (Redis stream key; unset disables the stream sink)
    - REDIS_URL (default redis://localhost:6379/0)
    """

    model_config = ConfigDict(frozen=True)

    # Quiet period that ends coalescence eligibility. <= 0 disables coalescence.
    coalescence_window_ms: int = DEFAULT_COALESCENCE_WINDOW_MS
    verbose: bool = True
    events_stream: str | None = Field(default=None, min_length=1)
    redis_url: str = Field(default_factory=get_redis_url)

    @property
    def coalescence_window_s(self) -> float:
        return self.coalescence_window_ms / 1000.0

    @classmethod
    def from_env(cls) -> "HistoryConfig":
        # Unset variables fall back to the model defaults; pydantic coerces the strings.
        raw: dict[str, str] = {}
        window = os.environ.get("COMMAND_HISTORY_COALESCENCE_WINDOW_MS")
        if window:
            raw["coalescence_window_ms"] = window
        verbose = os.environ.get("COMMAND_HISTORY_VERBOSE")
        if verbose:
            raw["verbose"] = verbose
        stream = os.environ.get("COMMAND_HISTORY_EVENTS_STREAM")
        if stream:
            raw["events_stream"] = stream
        return cls.model_validate(raw)
