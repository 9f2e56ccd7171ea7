# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Adaptiva Core Framework

Foundational building blocks: primitives, exceptions and the stand-alone
investment-analysis calculations.
"""

from . import primitives
from .calculations import (
    BreakEvenResult,
    FinancialCalculations,
    IRRResult,
    NPVResult,
    PaybackResult,
    ProjectionResult,
    SensitivityPoint,
)
from .exceptions import (
    AdaptivaError,
    CalculationError,
    DerivationError,
    InputValidationError,
)

__all__ = [
    "primitives",
    # Calculations
    "FinancialCalculations",
    "NPVResult",
    "IRRResult",
    "PaybackResult",
    "BreakEvenResult",
    "ProjectionResult",
    "SensitivityPoint",
    # Exceptions
    "AdaptivaError",
    "InputValidationError",
    "DerivationError",
    "CalculationError",
]
