# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Adaptiva Derivation Engine

Per-period derivation with centralized override precedence, and the
cross-period sequencer that threads opening balances forward.
"""

from .overrides import OVERRIDE_TARGETS, OverrideSet
from .period import derive_period, parse_inputs
from .records import CalculatedPeriodData, TrendDelta
from .sequencer import (
    TREND_METRICS,
    PeriodResults,
    compute_trends,
    derive_all,
    derive_all_validated,
    rederive_from,
)

__all__ = [
    "CalculatedPeriodData",
    "TrendDelta",
    "OverrideSet",
    "OVERRIDE_TARGETS",
    "PeriodResults",
    "TREND_METRICS",
    "compute_trends",
    "derive_all",
    "derive_all_validated",
    "derive_period",
    "parse_inputs",
    "rederive_from",
]
