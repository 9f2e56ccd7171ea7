# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Numeric coercion helpers shared by validation and derivation.
"""

from __future__ import annotations

import math
from decimal import Decimal
from numbers import Real
from typing import Any, Optional


def is_blank(value: Any) -> bool:
    """True for None and empty/whitespace strings (treated as 'not provided')."""
    return value is None or (isinstance(value, str) and value.strip() == "")


def parse_number(value: Any) -> Optional[float]:
    """
    Coerce a raw input value to float.

    Returns None for blank values. Real numbers, Decimal amounts and plain
    numeric strings ("1200.5") are accepted; booleans, other strings and
    non-numeric objects raise.

    Raises:
        ValueError: If the value is not numeric
    """
    if is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValueError(f"expected a number, got boolean {value!r}")
    if isinstance(value, (Real, Decimal)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            raise ValueError(f"expected a number, got {value!r}") from None
    raise ValueError(f"expected a number, got {type(value).__name__}")


def is_finite_number(value: Any) -> bool:
    """True when `value` parses to a finite float (blank counts as False)."""
    try:
        parsed = parse_number(value)
    except ValueError:
        return False
    return parsed is not None and math.isfinite(parsed)


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning `default` instead of inf/NaN when the denominator is zero."""
    if denominator == 0:
        return default
    return numerator / denominator


def percent_of(part: float, whole: float) -> float:
    """`part` as a percentage (0-100 scale) of `whole`, 0 when `whole` is 0."""
    return safe_divide(part, whole) * 100.0
