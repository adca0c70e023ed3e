"""Factor value parsing.

Converts the raw text typed or selected for a factor into the value slotted into a
rule condition. NUMBER factors become numbers when they parse; everything else is
trimmed text, except text that looks like a JSON object or array, which is decoded.

Parsers are plain callables ``(factor_key, raw_value) -> value`` so the compiler can
take a stricter variant without changing shape.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from typing import Any, Protocol

from tpa_pricing.taxonomy import FACTOR_DEFINITION_LOOKUP, FactorDefinition


class FactorValueError(ValueError):
    """Raised by the strict parser when a value does not fit its factor."""

    def __init__(self, factor_key: str, message: str) -> None:
        super().__init__(message)
        self.factor_key = factor_key


class FactorValueParser(Protocol):
    def __call__(self, factor_key: str, raw_value: str) -> Any: ...


# ASCII numeric literals only; anything else stays text
_DECIMAL_LITERAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_PREFIXED_LITERAL = re.compile(r"0(?:[xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)", re.ASCII)


def parse_number(text: str) -> int | float | None:
    """Parse a numeric literal to an int (when integral in form) or float.

    Accepts signed decimal and exponent notation plus unsigned ``0x``/``0o``/``0b``
    integers. Anything else, including non-finite results, gives ``None``.
    """
    text = text.strip()
    if _PREFIXED_LITERAL.fullmatch(text):
        return int(text, 0)
    if not _DECIMAL_LITERAL.fullmatch(text):
        return None
    try:
        return int(text)
    except ValueError:
        pass
    value = float(text)
    if not math.isfinite(value):
        return None
    return value


def _decode_json_like(trimmed: str) -> Any:
    if trimmed.startswith(("{", "[")):
        try:
            return json.loads(trimmed)
        except json.JSONDecodeError:
            return trimmed
    return trimmed


def parse_factor_value(
    factor_key: str,
    raw_value: str,
    lookup: Mapping[str, FactorDefinition] = FACTOR_DEFINITION_LOOKUP,
) -> Any:
    """Lenient parse of a raw factor value. Never raises.

    Args:
        factor_key: Taxonomy key; unknown keys are treated as STRING factors.
        raw_value: Text as entered.
        lookup: Factor definitions by key.

    Returns:
        The empty string unchanged; a number for NUMBER factors that parse (else the
        original text); otherwise the trimmed text, JSON-decoded when it is an object
        or array that decodes.
    """
    if not raw_value:
        return raw_value

    definition = lookup.get(factor_key)
    if definition is not None and definition.data_type == "NUMBER":
        number = parse_number(raw_value)
        return raw_value if number is None else number

    return _decode_json_like(raw_value.strip())


class LenientFactorValueParser:
    """Default parser bound to a taxonomy lookup."""

    def __init__(self, lookup: Mapping[str, FactorDefinition] = FACTOR_DEFINITION_LOOKUP) -> None:
        self.lookup = lookup

    def __call__(self, factor_key: str, raw_value: str) -> Any:
        return parse_factor_value(factor_key, raw_value, self.lookup)


class StrictFactorValueParser:
    """Typed variant that raises :class:`FactorValueError` instead of passing bad
    values through, for unknown keys and for values that do not fit the factor."""

    def __init__(self, lookup: Mapping[str, FactorDefinition] = FACTOR_DEFINITION_LOOKUP) -> None:
        self.lookup = lookup

    def __call__(self, factor_key: str, raw_value: str) -> Any:
        definition = self.lookup.get(factor_key)
        if definition is None:
            raise FactorValueError(factor_key, f"Unknown factor '{factor_key}'")
        if not raw_value:
            return raw_value

        if definition.data_type == "NUMBER":
            number = parse_number(raw_value)
            if number is None:
                raise FactorValueError(
                    factor_key, f"{definition.name} expects a number, got '{raw_value}'"
                )
            return number

        trimmed = raw_value.strip()
        if definition.allowed_values and trimmed not in definition.allowed_values:
            raise FactorValueError(
                factor_key,
                f"{definition.name} must be one of {', '.join(definition.allowed_values)}; got '{trimmed}'",
            )
        return _decode_json_like(trimmed)


def format_factor_value(value: Any) -> str:
    """Render a parsed value back to display text.

    Numbers keep their numeric form (``12.5`` -> ``"12.5"``, ``5.0`` -> ``"5"``);
    decoded JSON is re-encoded compactly; text is returned as is.
    """
    if isinstance(value, bool):
        return json.dumps(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    if value is None:
        return ""
    return str(value)
