# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Exception classes for Adaptiva.

Only runtime failures raise. Input validation problems and post-derivation
consistency issues are returned as records so callers can display them
alongside the model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from adaptiva.fields.validation import FieldValidationError


class AdaptivaError(Exception):
    """Base class for all errors raised by Adaptiva."""


class InputValidationError(AdaptivaError, ValueError):
    """
    Raised when derivation is requested for input that failed field validation.

    Attributes:
        errors: Per-period validation errors, 1-based period numbers
    """

    def __init__(self, errors: List["FieldValidationError"]):
        self.errors = list(errors)
        periods = ", ".join(str(error.period) for error in self.errors[:10])
        more = f" (+{len(self.errors) - 10} more)" if len(self.errors) > 10 else ""
        super().__init__(f"Input validation failed for period(s) {periods}{more}")


class DerivationError(AdaptivaError, ValueError):
    """
    Raised when a period cannot be derived, e.g. a driver is NaN or infinite.

    Attributes:
        period_index: 0-based index of the period being derived
        field: Field key that caused the failure, if known
    """

    def __init__(
        self, message: str, period_index: Optional[int] = None, field: Optional[str] = None
    ):
        self.period_index = period_index
        self.field = field
        prefix = f"[Period {period_index + 1}] " if period_index is not None else ""
        super().__init__(f"{prefix}{message}")


class CalculationError(AdaptivaError, ValueError):
    """Raised when an investment-analysis calculator receives invalid parameters."""
