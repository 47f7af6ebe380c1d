"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Render prompt templates into model-ready messages.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any

from ..errors import InvalidParameterError
from ..types import ContentPart, ContentType, Message, Prompt, TemplateType
from .engines import ExpressionTemplateEngine, render_template
from .validation import VariableValidator

logger = logging.getLogger("promptloop.prompts")


class PromptRenderer:
    """
    Turn a cached `Prompt` plus variables into rendered messages.

    Every call works on deep copies of the template messages, so the same
    prompt can be rendered repeatedly (and concurrently) with different
    variables.
    """

    def __init__(
        self,
        *,
        validator: VariableValidator | None = None,
        expression_engine: ExpressionTemplateEngine | None = None,
    ) -> None:
        self._validator = validator or VariableValidator()
        self._expression_engine = expression_engine

    def render(
        self,
        prompt: Prompt | None,
        variables: Mapping[str, Any] | None = None,
    ) -> list[Message]:
        if prompt is None or prompt.prompt_template is None:
            raise InvalidParameterError("Prompt or template is null")

        template = prompt.prompt_template
        values = dict(variables or {})
        if template.variable_defs:
            self._validator.validate(values, template.variable_defs)

        messages = copy.deepcopy(list(template.messages or []))
        template_type = template.template_type or TemplateType.NORMAL
        for message in messages:
            self._render_message(message, values, template_type)
        return messages

    def _render_message(
        self,
        message: Message,
        variables: dict[str, Any],
        template_type: TemplateType,
    ) -> None:
        if message.content:
            message.content = self._render_text(message.content, variables, template_type)
        for part in message.parts or ():
            self._render_part(part, variables, template_type)

    def _render_part(
        self,
        part: ContentPart,
        variables: dict[str, Any],
        template_type: TemplateType,
    ) -> None:
        if part.type == ContentType.TEXT and part.text is not None:
            part.text = self._render_text(part.text, variables, template_type)
        elif part.type == ContentType.MULTI_PART_VARIABLE:
            # Expanded by the caller or server side, not substituted here.
            logger.debug("Leaving multi-part variable content part unexpanded")

    def _render_text(
        self,
        text: str,
        variables: dict[str, Any],
        template_type: TemplateType,
    ) -> str:
        rendered = render_template(
            template_type,
            text,
            variables,
            expression_engine=self._expression_engine,
        )
        return rendered if rendered is not None else text
