# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Input Validator

Checks raw per-period input against the field registry before any
derivation runs. Pure and side-effect free: the input is never mutated and
problems are returned as `FieldValidationError` records rather than raised.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import Field

from ..core.primitives import Model, ValidationCodeEnum
from ..utils import is_blank, parse_number
from .registry import FIELD_DESCRIPTORS, FieldDescriptor, read_raw

logger = logging.getLogger(__name__)


class FieldValidationError(Model):
    """
    Validation problems found in one period.

    Attributes:
        period: 1-based period number
        fields: Field key -> human-readable message
        codes: Field key -> failure class
    """

    period: int
    fields: Dict[str, str] = Field(default_factory=dict)
    codes: Dict[str, ValidationCodeEnum] = Field(default_factory=dict)


def validate_field(
    descriptor: FieldDescriptor,
    period: Mapping[str, Any],
    all_periods: Sequence[Mapping[str, Any]],
    period_index: int,
) -> Optional[Tuple[ValidationCodeEnum, str]]:
    """
    Validate one field of one period.

    Returns:
        (code, message) for the first failing check, or None when valid
    """
    if descriptor.first_period_only and period_index > 0:
        return None

    raw = read_raw(period, descriptor)
    if is_blank(raw):
        if descriptor.required and not descriptor.is_override:
            return ValidationCodeEnum.MISSING_REQUIRED, f"{descriptor.label} is required."
        return None

    try:
        value = parse_number(raw)
    except ValueError:
        return ValidationCodeEnum.INVALID_NUMBER, f"{descriptor.label} must be a number."
    if not math.isfinite(value):
        return ValidationCodeEnum.INVALID_NUMBER, f"{descriptor.label} must be a finite number."

    for rule in descriptor.rules:
        failure = rule.check(value, period, all_periods, period_index)
        if failure is not None:
            return failure
    return None


def validate_period(
    period: Mapping[str, Any],
    all_periods: Sequence[Mapping[str, Any]],
    period_index: int,
) -> Optional[FieldValidationError]:
    """
    Validate every registered field of one period; None when the period is valid.

    Raises:
        TypeError: If the period input is not a mapping
    """
    if not isinstance(period, Mapping):
        raise TypeError(
            f"Period {period_index + 1} input must be a mapping, got {type(period).__name__}"
        )
    fields: Dict[str, str] = {}
    codes: Dict[str, ValidationCodeEnum] = {}
    for descriptor in FIELD_DESCRIPTORS:
        failure = validate_field(descriptor, period, all_periods, period_index)
        if failure is not None:
            codes[descriptor.key], fields[descriptor.key] = failure

    if not fields:
        return None
    return FieldValidationError(period=period_index + 1, fields=fields, codes=codes)


def validate_all_fields(
    periods: Optional[Sequence[Mapping[str, Any]]],
) -> List[FieldValidationError]:
    """
    Validate raw input for every period.

    Args:
        periods: Chronological per-period input mappings (Python keys or wire aliases)

    Returns:
        One FieldValidationError per period with problems; empty list means valid

    Raises:
        TypeError: If any period input is not a mapping

    Example:
        ```python
        errors = validate_all_fields([{"revenue": None, ...}])
        errors[0].fields["revenue"]  # 'Net Revenue is required.'
        ```
    """
    if not periods:
        return []

    errors: List[FieldValidationError] = []
    for period_index, period in enumerate(periods):
        error = validate_period(period, periods, period_index)
        if error is not None:
            errors.append(error)

    if errors:
        logger.debug(f"Input validation found problems in {len(errors)} of {len(periods)} periods")
    return errors
