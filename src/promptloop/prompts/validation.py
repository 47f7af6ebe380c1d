"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: prompts/validation.py.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from ..errors import InvalidVariableError
from ..types import VariableDef, VariableType

_ARRAY_TYPES = frozenset(
    {
        VariableType.ARRAY_STRING,
        VariableType.ARRAY_BOOLEAN,
        VariableType.ARRAY_INTEGER,
        VariableType.ARRAY_FLOAT,
        VariableType.ARRAY_OBJECT,
    }
)
_STRUCTURAL_TYPES = frozenset({VariableType.PLACEHOLDER, VariableType.MULTI_PART})
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def matches_type(value: Any, expected: VariableType) -> bool:
    """Return whether `value` has the runtime kind declared by `expected`."""
    expected = VariableType(expected)
    if expected in _STRUCTURAL_TYPES:
        return True
    if expected is VariableType.STRING:
        return isinstance(value, str)
    if expected is VariableType.BOOLEAN:
        return isinstance(value, bool)
    if expected is VariableType.INTEGER:
        return (
            isinstance(value, int)
            and not isinstance(value, bool)
            and _INT64_MIN <= value <= _INT64_MAX
        )
    if expected is VariableType.FLOAT:
        return isinstance(value, float)
    if expected is VariableType.OBJECT:
        return isinstance(value, Mapping)
    if expected in _ARRAY_TYPES:
        return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))
    return False


class VariableValidator:
    """
    Check a variable bag against declared variable definitions.

    Only type-correctness of present values is enforced; definitions carry no
    required flag, so missing (or `None`) values pass.
    """

    def validate(
        self,
        variables: Mapping[str, Any] | None,
        variable_defs: Sequence[VariableDef] | None,
    ) -> None:
        if not variable_defs:
            return
        values = variables or {}
        for definition in variable_defs:
            value = values.get(definition.key)
            if value is None or definition.type is None:
                continue
            if not matches_type(value, definition.type):
                raise InvalidVariableError(
                    definition.key,
                    VariableType(definition.type).value,
                    type(value).__name__,
                )
