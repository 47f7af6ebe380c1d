"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: __init__.py.
"""

from __future__ import annotations

from .cache import CacheStats, CacheStore, EntryState
from .client import PromptLoopClient, create_client
from .errors import (
    AuthError,
    ClientClosedError,
    ErrorCode,
    InternalError,
    InvalidParameterError,
    InvalidVariableError,
    NetworkError,
    PromptLoopError,
    PromptNotFoundError,
    StreamClosedError,
    StreamEventError,
    TemplateRenderError,
)
from .prompts import PromptRenderer, PromptResolver, render_template
from .runtime import FetchCoordinator
from .settings import CacheSettings, PromptLoopSettings
from .streaming import ServerSentEvent, SSEDecoder, StreamReader
from .types import (
    ContentPart,
    ContentType,
    ExecuteParam,
    ExecuteResult,
    LLMConfig,
    Message,
    Prompt,
    PromptRef,
    PromptTemplate,
    Role,
    TemplateType,
    TokenUsage,
    Tool,
    ToolCall,
    ToolCallConfig,
    ToolFunction,
    VariableDef,
    VariableType,
)

__all__ = [
    "AuthError",
    "CacheSettings",
    "CacheStats",
    "CacheStore",
    "ClientClosedError",
    "ContentPart",
    "ContentType",
    "EntryState",
    "ErrorCode",
    "ExecuteParam",
    "ExecuteResult",
    "FetchCoordinator",
    "InternalError",
    "InvalidParameterError",
    "InvalidVariableError",
    "LLMConfig",
    "Message",
    "NetworkError",
    "Prompt",
    "PromptLoopClient",
    "PromptLoopError",
    "PromptLoopSettings",
    "PromptNotFoundError",
    "PromptRef",
    "PromptRenderer",
    "PromptResolver",
    "PromptTemplate",
    "Role",
    "SSEDecoder",
    "ServerSentEvent",
    "StreamClosedError",
    "StreamEventError",
    "StreamReader",
    "TemplateRenderError",
    "TemplateType",
    "TokenUsage",
    "Tool",
    "ToolCall",
    "ToolCallConfig",
    "ToolFunction",
    "VariableDef",
    "VariableType",
    "create_client",
    "render_template",
]
