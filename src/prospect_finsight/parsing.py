# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Tolerant numeric parsing for Prospect FinSight.

Upstream sources mix typed numbers with formatted report cells such as
``"$1,234.50"``, ``" 12 000 "`` or ``"(3,400)"``. Downstream arithmetic must
stay total, so parsing never raises: anything that cannot be turned into a
finite number becomes ``0.0``.

Two entry points are provided:

- ``parse_numeric(raw)`` returns the float only,
- ``parse_numeric_checked(raw)`` also reports *why* a zero was produced
  (missing input vs malformed input), which the normalizer turns into
  quality flags.
"""

import math
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Literal

ParseStatus = Literal["ok", "missing", "malformed"]

# Everything that is not a digit, a decimal point or a minus sign is
# formatting (currency symbols, thousands separators, whitespace, letters).
_FORMATTING_RE = re.compile(r"[^0-9.\-]")

# Accounting notation for negatives: "(1,234.00)"
_PARENTHESES_RE = re.compile(r"^\s*\((.*)\)\s*$")

# Scientific notation (Excel exports): "1.5E+06". Only valid when the whole
# cell is a number; stripping formatting from it would change the magnitude.
_EXPONENT_RE = re.compile(r"\d\s*[eE]\s*[+\-]?\d")


@dataclass(frozen=True)
class ParsedValue:
    """Result of a checked parse: the value and how it was obtained."""

    value: float
    status: ParseStatus

    @property
    def ok(self) -> bool:
        return self.status == "ok"


def _parse_text(text: str) -> ParsedValue:
    if not text.strip():
        return ParsedValue(0.0, "missing")

    negative = False
    match = _PARENTHESES_RE.match(text)
    if match:
        negative = True
        text = match.group(1)

    compact = text.strip().replace(",", "")
    try:
        direct = float(Decimal(compact))
    except InvalidOperation:
        if _EXPONENT_RE.search(text):
            return ParsedValue(0.0, "malformed")
    else:
        if not math.isfinite(direct):
            return ParsedValue(0.0, "malformed")
        return ParsedValue(-direct if negative else direct, "ok")

    cleaned = _FORMATTING_RE.sub("", text)
    if cleaned in {"", "-", ".", "-."}:
        return ParsedValue(0.0, "malformed")

    try:
        value = float(Decimal(cleaned))
    except InvalidOperation:
        return ParsedValue(0.0, "malformed")

    if not math.isfinite(value):
        return ParsedValue(0.0, "malformed")

    return ParsedValue(-value if negative else value, "ok")


def parse_numeric_checked(raw: Any) -> ParsedValue:
    """
    Parse ``raw`` into a float and report the parse status.

    Status values:
        ok        -> a finite number was obtained,
        missing   -> ``None`` or an empty/blank string,
        malformed -> anything else that did not yield a finite number
                     (including booleans, NaN and infinities).
    """
    if raw is None:
        return ParsedValue(0.0, "missing")

    # bool is a subclass of int; a flag is never an amount.
    if isinstance(raw, bool):
        return ParsedValue(0.0, "malformed")

    if isinstance(raw, (int, float, Decimal)):
        value = float(raw)
        if not math.isfinite(value):
            return ParsedValue(0.0, "malformed")
        return ParsedValue(value, "ok")

    if isinstance(raw, str):
        return _parse_text(raw)

    return ParsedValue(0.0, "malformed")


def parse_numeric(raw: Any) -> float:
    """Parse ``raw`` into a finite float, falling back to 0.0."""
    return parse_numeric_checked(raw).value
