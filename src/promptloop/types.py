"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

This module defines the prompt, message and execution types shared across promptloop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeAlias

CacheKey: TypeAlias = tuple[str, str, str]


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    PLACEHOLDER = "placeholder"


class TemplateType(str, Enum):
    """Template engine selector; `JINJA2` is the expression engine."""

    NORMAL = "normal"
    JINJA2 = "jinja2"


class ContentType(str, Enum):
    TEXT = "text"
    IMAGE_URL = "image_url"
    BASE64_DATA = "base64_data"
    MULTI_PART_VARIABLE = "multi_part_variable"


class VariableType(str, Enum):
    STRING = "string"
    PLACEHOLDER = "placeholder"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    OBJECT = "object"
    ARRAY_STRING = "array<string>"
    ARRAY_BOOLEAN = "array<boolean>"
    ARRAY_INTEGER = "array<integer>"
    ARRAY_FLOAT = "array<float>"
    ARRAY_OBJECT = "array<object>"
    MULTI_PART = "multi_part"


@dataclass(frozen=True, slots=True)
class PromptRef:
    """
    Reference to one prompt in the hub.

    `None` and `""` are equivalent for `version` and `label`; both mean
    "not specified" and produce the same cache key.
    """

    prompt_key: str
    version: str | None = None
    label: str | None = None

    @property
    def cache_key(self) -> CacheKey:
        return build_cache_key(self)


def build_cache_key(ref: PromptRef) -> CacheKey:
    """Build the structured cache key for a prompt reference."""
    return (ref.prompt_key, ref.version or "", ref.label or "")


def format_cache_key(key: CacheKey) -> str:
    """Render a cache key as `key:version:label` for log lines."""
    return ":".join(key)


@dataclass(slots=True)
class ContentPart:
    """One part of a multi-part message."""
    type: ContentType
    text: str | None = None
    image_url: str | None = None
    base64_data: str | None = None


@dataclass(slots=True)
class FunctionCall:
    name: str | None = None
    arguments: str | None = None


@dataclass(slots=True)
class ToolCall:
    """Tool invocation emitted by the model."""
    index: int = 0
    id: str | None = None
    type: str | None = None
    function_call: FunctionCall | None = None


@dataclass(slots=True)
class Message:
    """
    Role-tagged message with either plain `content` or multi-part `parts`.

    Messages are mutable so rendering can operate on a deep copy; the
    instances held by a cached `Prompt` are never modified.
    """

    role: Role | None = None
    content: str | None = None
    reasoning_content: str | None = None
    parts: list[ContentPart] | None = None
    tool_call_id: str | None = None
    tool_calls: list[ToolCall] | None = None


@dataclass(frozen=True, slots=True)
class VariableDef:
    """Declared variable with its expected runtime type."""
    key: str
    desc: str | None = None
    type: VariableType | None = None


@dataclass(frozen=True, slots=True)
class PromptTemplate:
    template_type: TemplateType | None = None
    messages: list[Message] | None = None
    variable_defs: list[VariableDef] | None = None


@dataclass(frozen=True, slots=True)
class ToolFunction:
    name: str | None = None
    description: str | None = None
    parameters: str | None = None


@dataclass(frozen=True, slots=True)
class Tool:
    type: str | None = None
    function: ToolFunction | None = None


@dataclass(frozen=True, slots=True)
class ToolCallConfig:
    tool_choice: str | None = None


@dataclass(frozen=True, slots=True)
class LLMConfig:
    """Model parameters attached to a prompt version."""
    temperature: float | None = None
    max_tokens: int | None = None
    top_k: int | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    json_mode: bool | None = None


@dataclass(frozen=True, slots=True)
class Prompt:
    """
    Prompt fetched from the hub.

    Instances are shared through the cache and treated as immutable; use
    `PromptRenderer` to obtain rendered copies of the messages.
    """

    workspace_id: str | None = None
    prompt_key: str | None = None
    version: str | None = None
    prompt_template: PromptTemplate | None = None
    tools: list[Tool] | None = None
    tool_call_config: ToolCallConfig | None = None
    llm_config: LLMConfig | None = None


@dataclass(frozen=True, slots=True)
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(frozen=True, slots=True)
class ExecuteParam:
    """
    Parameters for server-side prompt execution.

    `variable_vals` values may be strings, `Message` instances (or lists of
    them) for placeholder variables, `ContentPart` instances (or lists of
    them) for multi-part variables, or any JSON-serializable value.
    """

    prompt_key: str
    version: str | None = None
    label: str | None = None
    variable_vals: dict[str, Any] = field(default_factory=dict)
    messages: list[Message] | None = None

    @property
    def ref(self) -> PromptRef:
        return PromptRef(self.prompt_key, self.version, self.label)


@dataclass(frozen=True, slots=True)
class ExecuteResult:
    """One execution result, or one streamed chunk of it."""
    message: Message | None = None
    finish_reason: str | None = None
    usage: TokenUsage | None = None
