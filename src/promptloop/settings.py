"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Client and cache settings with explicit environment loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .errors import InvalidParameterError

DEFAULT_BASE_URL = "https://api.coze.cn"
DEFAULT_USER_AGENT = "promptloop-python/0.1.0"

PROMPT_MGET_PATH = "/v1/loop/prompts/mget"
PROMPT_EXECUTE_PATH = "/v1/loop/prompts/execute"
PROMPT_EXECUTE_STREAMING_PATH = "/v1/loop/prompts/execute_streaming"


@dataclass(frozen=True, slots=True)
class CacheSettings:
    """Bounds and refresh windows for the prompt cache."""

    max_size: int = 1000
    expire_after_write_s: float = 3600.0
    refresh_after_write_s: float = 1800.0
    max_workers: int = 4

    def validate(self) -> None:
        if self.max_size <= 0:
            raise InvalidParameterError("cache max_size must be positive")
        if self.max_workers <= 0:
            raise InvalidParameterError("cache max_workers must be positive")
        if self.expire_after_write_s <= 0:
            raise InvalidParameterError("cache expire_after_write_s must be positive")
        if not 0 < self.refresh_after_write_s < self.expire_after_write_s:
            raise InvalidParameterError(
                "cache refresh_after_write_s must be positive and lower than "
                "expire_after_write_s"
            )

    @staticmethod
    def from_env() -> "CacheSettings":
        """Load cache settings from environment variables."""
        return CacheSettings(
            max_size=int(os.getenv("PROMPTLOOP_CACHE_MAX_SIZE", "1000")),
            expire_after_write_s=float(os.getenv("PROMPTLOOP_CACHE_EXPIRE_S", "3600")),
            refresh_after_write_s=float(os.getenv("PROMPTLOOP_CACHE_REFRESH_S", "1800")),
            max_workers=int(os.getenv("PROMPTLOOP_CACHE_WORKERS", "4")),
        )


@dataclass(frozen=True, slots=True)
class PromptLoopSettings:
    """Explicit settings used by the client, transport and prompt cache."""

    workspace_id: str = ""
    base_url: str = DEFAULT_BASE_URL
    api_token: str | None = None
    timeout_s: float = 30.0
    stream_timeout_s: float | None = None
    user_agent: str = DEFAULT_USER_AGENT
    cache: CacheSettings = field(default_factory=CacheSettings)

    @property
    def prompt_endpoint(self) -> str:
        return self._url(PROMPT_MGET_PATH)

    @property
    def execute_endpoint(self) -> str:
        return self._url(PROMPT_EXECUTE_PATH)

    @property
    def execute_streaming_endpoint(self) -> str:
        return self._url(PROMPT_EXECUTE_STREAMING_PATH)

    def _url(self, path: str) -> str:
        return self.base_url.rstrip("/") + path

    def validate(self) -> None:
        if not self.workspace_id.strip():
            raise InvalidParameterError("workspace_id must be non-empty")
        if not self.base_url.strip():
            raise InvalidParameterError("base_url must be non-empty")
        if self.timeout_s <= 0:
            raise InvalidParameterError("timeout_s must be positive")
        self.cache.validate()

    @staticmethod
    def from_env() -> "PromptLoopSettings":
        """Load settings from environment variables."""
        stream_timeout = os.getenv("PROMPTLOOP_STREAM_TIMEOUT_S")
        return PromptLoopSettings(
            workspace_id=os.getenv("PROMPTLOOP_WORKSPACE_ID", ""),
            base_url=os.getenv("PROMPTLOOP_BASE_URL", DEFAULT_BASE_URL),
            api_token=os.getenv("PROMPTLOOP_API_TOKEN"),
            timeout_s=float(os.getenv("PROMPTLOOP_TIMEOUT_S", "30")),
            stream_timeout_s=float(stream_timeout) if stream_timeout else None,
            cache=CacheSettings.from_env(),
        )
