"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Prompt resolution with caching and in-flight fetch deduplication.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from concurrent.futures import Executor, Future

from ..cache import CacheStats, CacheStore
from ..errors import InternalError, InvalidParameterError, PromptLoopError, PromptNotFoundError
from ..runtime import FetchCoordinator, normalize_fetch_key
from ..settings import CacheSettings
from ..transport import HTTPTransport
from ..types import CacheKey, Prompt, PromptRef, build_cache_key, format_cache_key
from .codec import build_mget_request, decode_mget_response

logger = logging.getLogger("promptloop.prompts")


def validate_ref(ref: PromptRef | None) -> PromptRef:
    if ref is None:
        raise InvalidParameterError("prompt reference is required")
    if not isinstance(ref.prompt_key, str) or not ref.prompt_key.strip():
        raise InvalidParameterError("prompt_key must be non-empty")
    return ref


class PromptResolver:
    """
    Resolve prompt references to `Prompt` objects through a loading cache.

    Cache misses call the prompt hub through a `FetchCoordinator`, keyed by
    the normalized request body, so concurrent misses for the same reference
    produce one outbound request. Loader errors reach every caller waiting on
    that load; background refresh errors only leave the stale prompt cached.
    """

    def __init__(
        self,
        *,
        transport: HTTPTransport,
        prompt_endpoint: str,
        workspace_id: str,
        cache_settings: CacheSettings | None = None,
        executor: Executor | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._transport = transport
        self._prompt_endpoint = prompt_endpoint
        self._workspace_id = workspace_id
        self._coordinator: FetchCoordinator[Prompt] = FetchCoordinator()
        self._cache: CacheStore[CacheKey, Prompt] = CacheStore(
            self._load,
            settings=cache_settings,
            executor=executor,
            clock=clock or time.monotonic,
        )

    def get_prompt(self, ref: PromptRef) -> Prompt:
        """Return the prompt for `ref`, loading it from the hub on a cache miss."""
        key = build_cache_key(validate_ref(ref))
        return self._resolve(self._cache.get(key), ref)

    async def get_prompt_async(self, ref: PromptRef) -> Prompt:
        key = build_cache_key(validate_ref(ref))
        future = self._cache.get(key)
        try:
            prompt = await asyncio.wrap_future(future)
        except PromptLoopError:
            raise
        except Exception as exc:
            raise InternalError(f"Failed to get prompt: {ref.prompt_key}") from exc
        return self._require(prompt, ref)

    def invalidate(self, ref: PromptRef) -> None:
        """Evict the cached prompt; an in-flight fetch may still repopulate it."""
        self._cache.invalidate(build_cache_key(validate_ref(ref)))

    def invalidate_all(self) -> None:
        self._cache.invalidate_all()

    def stats(self) -> CacheStats:
        return self._cache.stats()

    def close(self) -> None:
        self._cache.close()

    def _resolve(self, future: Future[Prompt | None], ref: PromptRef) -> Prompt:
        try:
            prompt = future.result()
        except PromptLoopError:
            raise
        except Exception as exc:
            raise InternalError(f"Failed to get prompt: {ref.prompt_key}") from exc
        return self._require(prompt, ref)

    @staticmethod
    def _require(prompt: Prompt | None, ref: PromptRef) -> Prompt:
        if prompt is None:
            raise PromptNotFoundError(
                f"Failed to get prompt: {ref.prompt_key}. Cache returned null."
            )
        return prompt

    def _load(self, key: CacheKey) -> Prompt:
        prompt_key, version, label = key
        ref = PromptRef(prompt_key, version or None, label or None)
        body = build_mget_request(self._workspace_id, ref)
        fetch_key = normalize_fetch_key(body)
        logger.info("Fetching prompt from server for cache key %s", format_cache_key(key))
        return self._coordinator.coordinate(fetch_key, lambda: self._pull(body, ref)).result()

    def _pull(self, body: dict, ref: PromptRef) -> Prompt:
        logger.debug("Requesting prompt: endpoint=%s body=%s", self._prompt_endpoint, body)
        try:
            response = self._transport.post(self._prompt_endpoint, body)
            prompt = decode_mget_response(response, ref, endpoint=self._prompt_endpoint)
        except PromptLoopError:
            logger.error("Error fetching prompt %s from server", ref.prompt_key, exc_info=True)
            raise
        except Exception as exc:
            logger.exception("Unexpected error fetching prompt %s from server", ref.prompt_key)
            raise InternalError(
                f"Failed to fetch prompt from server: {ref.prompt_key}"
            ) from exc
        logger.info("Fetched prompt %s from server", ref.prompt_key)
        return prompt
