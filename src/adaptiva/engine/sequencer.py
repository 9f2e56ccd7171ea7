# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Cross-Period Sequencer

Derives an ordered list of periods as a strict left fold: period i is
derived from period i-1's finished record, which is how opening cash and
opening equity flow forward. The fold is inherently sequential. Trend
deltas are a second, independent pass over the finished records. Every
full or partial derivation ends with the identity checks from
`adaptiva.reporting.consistency`; failures are logged, never raised.
"""

from __future__ import annotations

import logging
from functools import reduce
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from ..core.exceptions import InputValidationError
from ..core.primitives import EngineSettings, FrequencyEnum
from ..fields.validation import validate_all_fields
from ..reporting.consistency import validate_series_consistency
from .period import derive_period
from .records import CalculatedPeriodData, TrendDelta

logger = logging.getLogger(__name__)

PeriodResults = Tuple[CalculatedPeriodData, ...]

TREND_METRICS: Tuple[str, ...] = (
    "revenue",
    "gross_profit",
    "ebitda",
    "net_profit",
    "operating_cash_flow",
    "closing_cash",
    "working_capital_value",
    "wc_days",
    "equity",
)


def _resolve_settings(
    period_type: Union[None, str, FrequencyEnum], settings: Optional[EngineSettings]
) -> EngineSettings:
    settings = settings or EngineSettings()
    if period_type is not None:
        settings = settings.model_copy(
            update={"period_type": FrequencyEnum.from_label(period_type)}
        )
    return settings


def _fold(
    inputs: Sequence[Mapping[str, Any]],
    settings: EngineSettings,
    seed: PeriodResults = (),
) -> PeriodResults:
    """Left-fold `inputs` onto `seed`, one immutable tuple per step."""

    def step(acc: PeriodResults, raw: Mapping[str, Any]) -> PeriodResults:
        prior = acc[-1] if acc else None
        return acc + (derive_period(raw, prior, len(acc), settings),)

    return reduce(step, inputs, seed)


def _check_consistency(periods: PeriodResults, settings: EngineSettings) -> None:
    """Run the identity checks on a finished derivation and log what fails."""
    for issue in validate_series_consistency(periods, settings=settings):
        logger.debug(issue.message)


def _delta(current: Optional[float], previous: Optional[float]) -> TrendDelta:
    if current is None or previous is None:
        return TrendDelta()
    change = current - previous
    change_pct = change / abs(previous) * 100.0 if previous != 0 else None
    return TrendDelta(change=change, change_pct=change_pct)


def compute_trends(periods: Sequence[CalculatedPeriodData]) -> PeriodResults:
    """
    Attach period-over-period deltas of the headline metrics.

    Each period only reads its own record and its predecessor, so this pass
    has no ordering constraint of its own.

    Returns:
        New records with `trends` populated; period 0 gets empty deltas
    """
    results = []
    for index, period in enumerate(periods):
        previous = periods[index - 1] if index > 0 else None
        trends: Dict[str, TrendDelta] = {
            metric: (
                _delta(getattr(period, metric), getattr(previous, metric))
                if previous is not None
                else TrendDelta()
            )
            for metric in TREND_METRICS
        }
        results.append(period.model_copy(update={"trends": trends}))
    return tuple(results)


def derive_all(
    inputs: Sequence[Mapping[str, Any]],
    period_type: Union[None, str, FrequencyEnum] = None,
    settings: Optional[EngineSettings] = None,
) -> PeriodResults:
    """
    Derive every period in chronological order.

    Args:
        inputs: Caller-owned per-period input mappings, oldest first
        period_type: Period label ('annual', 'quarterly', 'monthly' or the
            template labels 'anos', 'trimestres', 'meses'); overrides
            `settings.period_type` when given
        settings: Engine settings

    Returns:
        Tuple of fresh CalculatedPeriodData records, one per input

    Raises:
        DerivationError: If any period fails; no partial result is returned

    Example:
        ```python
        results = derive_all(periods, period_type="quarterly")
        assert results[1].opening_cash == results[0].closing_cash
        ```
    """
    if not inputs:
        logger.warning("derive_all called with empty input")
        return ()

    settings = _resolve_settings(period_type, settings)
    derived = _fold(inputs, settings)
    logger.debug(
        f"Derived {len(derived)} {settings.period_type.value} periods "
        f"({settings.days_in_period} days each)"
    )
    results = compute_trends(derived)
    _check_consistency(results, settings)
    return results


def rederive_from(
    previous: Sequence[CalculatedPeriodData],
    inputs: Sequence[Mapping[str, Any]],
    start_index: int,
    period_type: Union[None, str, FrequencyEnum] = None,
    settings: Optional[EngineSettings] = None,
) -> PeriodResults:
    """
    Re-derive periods from `start_index` onward after an edit.

    Periods before `start_index` are reused from `previous` unchanged; every
    later period is re-derived because its opening balances depend on the
    edited one.

    Raises:
        ValueError: If `start_index` is outside the known periods
    """
    if start_index < 0 or start_index > len(previous) or start_index > len(inputs):
        raise ValueError(
            f"start_index {start_index} out of range for {len(previous)} derived "
            f"and {len(inputs)} input periods"
        )

    settings = _resolve_settings(period_type, settings)
    seed = tuple(previous[:start_index])
    derived = _fold(inputs[start_index:], settings, seed)
    logger.debug(f"Re-derived periods {start_index + 1}..{len(derived)}")
    results = compute_trends(derived)
    _check_consistency(results, settings)
    return results


def derive_all_validated(
    inputs: Sequence[Mapping[str, Any]],
    period_type: Union[None, str, FrequencyEnum] = None,
    settings: Optional[EngineSettings] = None,
) -> PeriodResults:
    """
    Validate input with `validate_all_fields`, then derive.

    Raises:
        InputValidationError: If any period fails field validation
    """
    errors = validate_all_fields(inputs)
    if errors:
        raise InputValidationError(errors)
    return derive_all(inputs, period_type=period_type, settings=settings)
