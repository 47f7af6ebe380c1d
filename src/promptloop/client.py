"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Client facade for prompt resolution, formatting and execution.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Mapping
from concurrent.futures import Executor
from dataclasses import replace
from typing import Any

from .cache import CacheStats
from .errors import ClientClosedError, InternalError, InvalidParameterError, PromptLoopError
from .prompts import PromptRenderer, PromptResolver, validate_ref
from .prompts.codec import build_execute_request, decode_execute_response
from .settings import PromptLoopSettings
from .streaming import ExecuteResultParser, SSEDecoder, StreamReader
from .transport import HTTPTransport, UrllibTransport
from .types import ExecuteParam, ExecuteResult, Message, Prompt, PromptRef

logger = logging.getLogger("promptloop.client")


def validate_execute_param(param: ExecuteParam | None) -> ExecuteParam:
    if param is None:
        raise InvalidParameterError("execute param is required")
    validate_ref(param.ref)
    return param


class PromptLoopClient:
    """
    Entry point for fetching, rendering and executing hub prompts.

    Prompt lookups go through a stale-while-refresh cache with in-flight
    deduplication. Blocking methods are safe to call from many threads; the
    `*_async` variants await the same shared work without blocking the loop.
    """

    def __init__(
        self,
        *,
        settings: PromptLoopSettings,
        transport: HTTPTransport | None = None,
        renderer: PromptRenderer | None = None,
        executor: Executor | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        settings.validate()
        self.settings = settings
        self._owns_transport = transport is None
        self._transport = transport or UrllibTransport.from_settings(settings)
        self._renderer = renderer or PromptRenderer()
        self._resolver = PromptResolver(
            transport=self._transport,
            prompt_endpoint=settings.prompt_endpoint,
            workspace_id=settings.workspace_id,
            cache_settings=settings.cache,
            executor=executor,
            clock=clock,
        )
        self._closed = False
        self._close_lock = threading.Lock()
        logger.info("Prompt client initialized for workspace %s", settings.workspace_id)

    @property
    def workspace_id(self) -> str:
        self._ensure_open()
        return self.settings.workspace_id

    @property
    def closed(self) -> bool:
        return self._closed

    def get_prompt(self, ref: PromptRef) -> Prompt:
        self._ensure_open()
        return self._resolver.get_prompt(ref)

    async def get_prompt_async(self, ref: PromptRef) -> Prompt:
        self._ensure_open()
        return await self._resolver.get_prompt_async(ref)

    def format_prompt(
        self,
        prompt: Prompt,
        variables: Mapping[str, Any] | None = None,
    ) -> list[Message]:
        """Render `prompt` with `variables`; the prompt itself is never modified."""
        self._ensure_open()
        if prompt is None:
            raise InvalidParameterError("prompt is required")
        return self._renderer.render(prompt, variables or {})

    def get_and_format_prompt(
        self,
        ref: PromptRef,
        variables: Mapping[str, Any] | None = None,
    ) -> list[Message]:
        return self.format_prompt(self.get_prompt(ref), variables)

    async def get_and_format_prompt_async(
        self,
        ref: PromptRef,
        variables: Mapping[str, Any] | None = None,
    ) -> list[Message]:
        prompt = await self.get_prompt_async(ref)
        return self.format_prompt(prompt, variables)

    def invalidate_cache(self, ref: PromptRef) -> None:
        self._ensure_open()
        self._resolver.invalidate(ref)

    def invalidate_all_cache(self) -> None:
        self._ensure_open()
        self._resolver.invalidate_all()

    def cache_stats(self) -> CacheStats:
        return self._resolver.stats()

    def execute(self, param: ExecuteParam) -> ExecuteResult:
        """Execute a prompt server-side and return the complete result."""
        self._ensure_open()
        param = validate_execute_param(param)
        body = build_execute_request(self.settings.workspace_id, param)
        endpoint = self.settings.execute_endpoint
        logger.debug("Executing prompt %s: endpoint=%s", param.prompt_key, endpoint)
        try:
            response = self._transport.post(endpoint, body)
        except PromptLoopError:
            raise
        except Exception as exc:
            raise InternalError(f"Failed to execute prompt: {param.prompt_key}") from exc
        return decode_execute_response(response)

    async def execute_async(self, param: ExecuteParam) -> ExecuteResult:
        return await asyncio.to_thread(self.execute, param)

    def execute_streaming(self, param: ExecuteParam) -> StreamReader[ExecuteResult]:
        """
        Execute a prompt with a streaming response.

        The returned reader owns the open response; close it (or use it as a
        context manager) even when the stream is not fully drained.
        """
        self._ensure_open()
        param = validate_execute_param(param)
        body = build_execute_request(self.settings.workspace_id, param)
        endpoint = self.settings.execute_streaming_endpoint
        logger.debug("Executing prompt %s with streaming: endpoint=%s", param.prompt_key, endpoint)
        try:
            stream = self._transport.post_stream(endpoint, body)
        except PromptLoopError:
            raise
        except Exception as exc:
            raise InternalError(
                f"Failed to execute streaming prompt: {param.prompt_key}"
            ) from exc
        if stream is None:
            raise InternalError("Empty response body from server")
        return StreamReader(SSEDecoder(stream), ExecuteResultParser())

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        logger.info("Shutting down prompt client")
        try:
            self._resolver.close()
        finally:
            if self._owns_transport:
                self._transport.close()

    def __enter__(self) -> "PromptLoopClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise ClientClosedError("Prompt client has been closed")


def create_client(
    settings: PromptLoopSettings | None = None,
    *,
    transport: HTTPTransport | None = None,
    **overrides: Any,
) -> PromptLoopClient:
    """
    Build a client from explicit settings, or from the environment.

    Keyword overrides replace individual settings fields, for example
    `create_client(workspace_id="123")`.
    """
    resolved = settings or PromptLoopSettings.from_env()
    if overrides:
        resolved = replace(resolved, **overrides)
    return PromptLoopClient(settings=resolved, transport=transport)
