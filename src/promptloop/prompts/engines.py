"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Template engines used to render prompt message text.
"""

from __future__ import annotations

import hashlib
import json
import re
import threading
from collections.abc import Mapping
from typing import Any

from jinja2 import ChainableUndefined, Template, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from ..errors import PromptLoopError, TemplateRenderError
from ..types import TemplateType

_MAX_COMPILED_TEMPLATES = 512
_DEFAULT_SEPARATOR = ":-"

# `$${name}` escapes, `${name}` / `${name:-default}` and `{{name}}`.
_NORMAL_TOKEN = re.compile(
    r"\$\$\{(?P<escaped>[^{}]*)\}"
    r"|\$\{(?P<dollar>[^{}]+)\}"
    r"|\{\{(?P<brace>[^{}]+)\}\}"
)


def stringify_value(value: Any) -> str:
    """Convert a variable value into the text substituted by the normal engine."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def render_normal(template: str | None, variables: Mapping[str, Any] | None) -> str | None:
    """
    Substitute `${name}` and `{{name}}` placeholders in one pass.

    Unknown placeholders are left verbatim. `${name:-fallback}` uses the
    fallback when `name` is absent and `$${name}` renders a literal `${name}`.
    Substituted values are never re-scanned for placeholders.
    """
    if not template:
        return template
    values = variables or {}

    def _replace(match: re.Match[str]) -> str:
        escaped = match.group("escaped")
        if escaped is not None:
            return "${" + escaped + "}"

        dollar = match.group("dollar")
        if dollar is not None:
            name, sep, fallback = dollar.partition(_DEFAULT_SEPARATOR)
            if name in values:
                return stringify_value(values[name])
            if sep:
                return fallback
            return match.group(0)

        name = match.group("brace")
        if name in values:
            return stringify_value(values[name])
        return match.group(0)

    try:
        return _NORMAL_TOKEN.sub(_replace, template)
    except PromptLoopError:
        raise
    except Exception as exc:
        raise TemplateRenderError(f"failed to render normal template: {exc}") from exc


class ExpressionTemplateEngine:
    """
    Jinja-backed engine supporting conditionals, loops, filters and attribute access.

    Templates come from the prompt hub, so they run in a sandboxed
    environment: private and dunder attributes are not reachable. Unknown
    names render as empty text instead of raising. Any failure while
    rendering surfaces as `TemplateRenderError`. Compiled templates are
    cached by content hash.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._template_cache: dict[str, Template] = {}
        self._jinja = SandboxedEnvironment(
            undefined=ChainableUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )

    def render(self, template: str | None, variables: Mapping[str, Any] | None) -> str | None:
        if not template:
            return template

        compiled = self._compile(template)
        try:
            return compiled.render(dict(variables or {}))
        except PromptLoopError:
            raise
        except Exception as exc:
            raise TemplateRenderError(f"failed to render jinja2 template: {exc}") from exc

    def _compile(self, template: str) -> Template:
        digest = hashlib.sha256(template.encode("utf-8")).hexdigest()
        with self._lock:
            cached = self._template_cache.get(digest)
        if cached is not None:
            return cached

        try:
            compiled = self._jinja.from_string(template)
        except TemplateError as exc:
            raise TemplateRenderError(f"invalid jinja2 template syntax: {exc}") from exc
        except Exception as exc:
            raise TemplateRenderError(f"failed to compile jinja2 template: {exc}") from exc

        with self._lock:
            if len(self._template_cache) >= _MAX_COMPILED_TEMPLATES:
                self._template_cache.pop(next(iter(self._template_cache)))
            return self._template_cache.setdefault(digest, compiled)


_EXPRESSION_ENGINE: ExpressionTemplateEngine | None = None
_EXPRESSION_ENGINE_LOCK = threading.Lock()


def get_expression_engine() -> ExpressionTemplateEngine:
    """
    Return process-wide expression engine singleton.
    """
    global _EXPRESSION_ENGINE
    if _EXPRESSION_ENGINE is not None:
        return _EXPRESSION_ENGINE
    with _EXPRESSION_ENGINE_LOCK:
        if _EXPRESSION_ENGINE is None:
            _EXPRESSION_ENGINE = ExpressionTemplateEngine()
    return _EXPRESSION_ENGINE


def render_template(
    template_type: TemplateType | None,
    template: str | None,
    variables: Mapping[str, Any] | None,
    *,
    expression_engine: ExpressionTemplateEngine | None = None,
) -> str | None:
    """Render `template` with the engine selected by `template_type` (normal by default)."""
    try:
        kind = TemplateType(template_type or TemplateType.NORMAL)
    except ValueError as exc:
        raise TemplateRenderError(f"unsupported template type: {template_type}") from exc

    if kind is TemplateType.NORMAL:
        return render_normal(template, variables)
    engine = expression_engine or get_expression_engine()
    return engine.render(template, variables)
