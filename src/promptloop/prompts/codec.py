"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Wire encoding and decoding for the prompt hub and prompt execution APIs.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import TypeAdapter, ValidationError

from ..errors import InternalError, InvalidParameterError, PromptNotFoundError
from ..types import (
    ContentPart,
    ExecuteParam,
    ExecuteResult,
    Message,
    Prompt,
    PromptRef,
    TokenUsage,
)

logger = logging.getLogger("promptloop.prompts")

_PREVIEW_CHARS = 500
_HTML_PREFIXES = ("<!", "<html")

_PROMPT_ADAPTER: TypeAdapter[Prompt] = TypeAdapter(Prompt)
_MESSAGE_ADAPTER: TypeAdapter[Message] = TypeAdapter(Message)
_MESSAGES_ADAPTER: TypeAdapter[list[Message]] = TypeAdapter(list[Message])
_PARTS_ADAPTER: TypeAdapter[list[ContentPart]] = TypeAdapter(list[ContentPart])
_USAGE_ADAPTER: TypeAdapter[TokenUsage] = TypeAdapter(TokenUsage)


def looks_like_html(text: str) -> bool:
    """Detect HTML error/login pages returned in place of JSON."""
    return text.lstrip()[:5].lower().startswith(_HTML_PREFIXES)


def _preview(text: str) -> str:
    return text if len(text) <= _PREVIEW_CHARS else text[:_PREVIEW_CHARS]


def _ref_query(ref: PromptRef) -> dict[str, str]:
    query = {"prompt_key": ref.prompt_key}
    if ref.version:
        query["version"] = ref.version
    if ref.label:
        query["label"] = ref.label
    return query


def build_mget_request(workspace_id: str, ref: PromptRef) -> dict[str, Any]:
    """Build the single-query body for the prompt mget API."""
    return {"workspace_id": workspace_id, "queries": [_ref_query(ref)]}


def decode_mget_response(text: str | None, ref: PromptRef, *, endpoint: str = "") -> Prompt:
    """
    Extract the prompt for `ref` from an mget response body.

    Expected shape: `{"data": {"items": [{"query": {...}, "prompt": {...}}]}}`.
    Empty bodies, HTML pages, invalid JSON and responses without a prompt
    item raise `PromptNotFoundError`; a prompt payload that does not match
    the prompt schema raises `InternalError`.
    """
    if not text or not text.strip():
        raise PromptNotFoundError(f"Empty response from server for prompt: {ref.prompt_key}")

    if looks_like_html(text):
        logger.error(
            "Received HTML instead of JSON from %s for prompt %s; check credentials "
            "and endpoint. Preview: %s",
            endpoint,
            ref.prompt_key,
            _preview(text),
        )
        raise PromptNotFoundError(
            "Server returned HTML instead of JSON. This usually indicates "
            f"authentication failure or incorrect endpoint. Endpoint: {endpoint}, "
            f"Prompt Key: {ref.prompt_key}"
        )

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse prompt response as JSON. Preview: %s", _preview(text))
        raise PromptNotFoundError(
            f"Failed to parse response as JSON. Endpoint: {endpoint}, "
            f"Prompt Key: {ref.prompt_key}"
        ) from exc

    item = _select_item(payload, ref)
    if item is None:
        raise PromptNotFoundError(f"Prompt not found in response: {ref.prompt_key}")

    try:
        return _PROMPT_ADAPTER.validate_python(item["prompt"])
    except ValidationError as exc:
        raise InternalError(
            f"Malformed prompt payload for {ref.prompt_key}: {exc}"
        ) from exc


def _select_item(payload: Any, ref: PromptRef) -> Mapping[str, Any] | None:
    if not isinstance(payload, Mapping):
        return None
    data = payload.get("data")
    if not isinstance(data, Mapping):
        return None
    items = data.get("items")
    if not isinstance(items, list):
        return None

    candidates = [
        item for item in items if isinstance(item, Mapping) and isinstance(item.get("prompt"), Mapping)
    ]
    for item in candidates:
        query = item.get("query")
        if isinstance(query, Mapping) and query.get("prompt_key") == ref.prompt_key:
            return item
    for item in candidates:
        if not isinstance(item.get("query"), Mapping):
            return item
    return None


def encode_messages(messages: Sequence[Message]) -> list[dict[str, Any]]:
    return _MESSAGES_ADAPTER.dump_python(list(messages), mode="json", exclude_none=True)


def encode_parts(parts: Sequence[ContentPart]) -> list[dict[str, Any]]:
    return _PARTS_ADAPTER.dump_python(list(parts), mode="json", exclude_none=True)


def encode_variable_val(key: str, value: Any) -> dict[str, Any]:
    """
    Encode one execution variable.

    Strings map to `value`, messages to `placeholder_messages`, content parts
    to `multi_part_values`; anything else is sent as JSON text.
    """
    if value is None:
        raise InvalidParameterError(f"Variable value for key '{key}' is null")

    encoded: dict[str, Any] = {"key": key}
    if isinstance(value, str):
        encoded["value"] = value
    elif isinstance(value, Message):
        encoded["placeholder_messages"] = encode_messages([value])
    elif isinstance(value, ContentPart):
        encoded["multi_part_values"] = encode_parts([value])
    elif isinstance(value, (list, tuple)) and value and isinstance(value[0], Message):
        encoded["placeholder_messages"] = encode_messages(value)
    elif isinstance(value, (list, tuple)) and value and isinstance(value[0], ContentPart):
        encoded["multi_part_values"] = encode_parts(value)
    else:
        try:
            encoded["value"] = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise InvalidParameterError(
                f"Variable value for key '{key}' is not JSON serializable"
            ) from exc
    return encoded


def build_execute_request(workspace_id: str, param: ExecuteParam) -> dict[str, Any]:
    """Build the body for the execute and execute_streaming APIs."""
    body: dict[str, Any] = {
        "workspace_id": workspace_id,
        "prompt_identifier": _ref_query(param.ref),
    }
    if param.variable_vals:
        body["variable_vals"] = [
            encode_variable_val(key, value) for key, value in param.variable_vals.items()
        ]
    if param.messages:
        body["messages"] = encode_messages(param.messages)
    return body


def decode_execute_result(data: Mapping[str, Any]) -> ExecuteResult:
    """Map one `{message, finish_reason, usage}` object to `ExecuteResult`."""
    try:
        message = data.get("message")
        usage = data.get("usage")
        finish_reason = data.get("finish_reason")
        return ExecuteResult(
            message=_MESSAGE_ADAPTER.validate_python(message) if message is not None else None,
            finish_reason=str(finish_reason) if finish_reason is not None else None,
            usage=_USAGE_ADAPTER.validate_python(usage) if usage is not None else None,
        )
    except ValidationError as exc:
        raise InternalError(f"Malformed execute result: {exc}") from exc


def decode_execute_response(text: str | None) -> ExecuteResult:
    """Decode a non-streaming execute response `{"data": {...}}`."""
    if not text or not text.strip():
        raise InternalError("Empty response from server for execute request")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InternalError(
            f"Failed to parse execute response as JSON: {_preview(text)}"
        ) from exc
    if not isinstance(payload, Mapping) or "data" not in payload:
        raise InternalError(f"Invalid response format. Response: {_preview(text)}")
    data = payload["data"]
    if data is None:
        return ExecuteResult()
    if not isinstance(data, Mapping):
        raise InternalError(f"Invalid response format. Response: {_preview(text)}")
    return decode_execute_result(data)
