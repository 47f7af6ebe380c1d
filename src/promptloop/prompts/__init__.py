"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: prompts/__init__.py.
"""

from .engines import (
    ExpressionTemplateEngine,
    get_expression_engine,
    render_normal,
    render_template,
)
from .renderer import PromptRenderer
from .resolver import PromptResolver, validate_ref
from .validation import VariableValidator

__all__ = [
    "ExpressionTemplateEngine",
    "PromptRenderer",
    "PromptResolver",
    "VariableValidator",
    "get_expression_engine",
    "render_normal",
    "render_template",
    "validate_ref",
]
