# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Consistency Validation

Read-only checks of the accounting identities every derived period must
satisfy. Problems come back as severity-tagged `ConsistencyIssue` records;
the SSOT is never modified and the checks never raise, so a view can flag
"does not reconcile" without discarding the model.

Checks per period:
    - Working capital value: AR + inventory - AP
    - Cash conversion cycle: AR days + inventory days - AP days
    - Balance sheet equation: assets = liabilities + equity + difference
    - Cash reconciliation: opening cash + net change = closing cash

Across periods, opening cash must equal the prior closing cash exactly.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic.alias_generators import to_camel

from ..core.primitives import (
    ConsistencyCheckEnum,
    EngineSettings,
    Model,
    SeverityEnum,
)
from ..utils import parse_number

logger = logging.getLogger(__name__)

PeriodLike = Union[Model, Mapping[str, Any]]


class ConsistencyIssue(Model):
    """One failed identity, with the values that did not match."""

    type: ConsistencyCheckEnum
    period_label: str
    message: str
    severity: SeverityEnum = SeverityEnum.CRITICAL_ERROR
    expected: Optional[float] = None
    actual: Optional[float] = None


def _value(period: PeriodLike, key: str) -> float:
    """Read a numeric field; missing, blank or non-numeric values count as 0."""
    if isinstance(period, Mapping):
        raw = period.get(key)
        if raw is None:
            raw = period.get(to_camel(key))
    else:
        raw = getattr(period, key, None)
    try:
        value = parse_number(raw)
    except ValueError:
        return 0.0
    if value is None or not math.isfinite(value):
        return 0.0
    return value


def _check(
    check: ConsistencyCheckEnum,
    label: str,
    description: str,
    expected: float,
    actual: float,
    tolerance: float,
) -> Optional[ConsistencyIssue]:
    if abs(expected - actual) <= tolerance:
        return None
    return ConsistencyIssue(
        type=check,
        period_label=label,
        message=(
            f"{label}: {description} does not reconcile "
            f"(expected {expected:,.2f}, actual {actual:,.2f})"
        ),
        expected=expected,
        actual=actual,
    )


def resolve_labels(periods: Sequence[Any], labels: Optional[Sequence[str]] = None) -> List[str]:
    """Labels for issue messages; defaults to "Period 1", "Period 2", ..."""
    if labels is None:
        return [f"Period {i + 1}" for i in range(len(periods))]
    if len(labels) != len(periods):
        raise ValueError(f"Expected {len(periods)} labels, got {len(labels)}")
    return list(labels)


def validate_internal_ssot_consistency(
    period: PeriodLike,
    label: str,
    settings: Optional[EngineSettings] = None,
) -> List[ConsistencyIssue]:
    """
    Check the internal identities of one derived period.

    Args:
        period: CalculatedPeriodData or a mapping with snake_case or camelCase keys;
            partially populated periods are accepted
        label: Period label used in the issue messages (e.g. "Year 2")
        settings: Tolerances; defaults to 0.015 currency units and 0.1 days

    Returns:
        List of CRITICAL_ERROR issues; empty when the period is consistent

    Example:
        ```python
        issues = validate_internal_ssot_consistency(results[0], "Year 1")
        assert issues == []
        ```
    """
    tolerances = (settings or EngineSettings()).tolerances

    def v(key: str) -> float:
        return _value(period, key)

    checks = [
        _check(
            ConsistencyCheckEnum.WC_VALUE,
            label,
            "Working capital value (AR + inventory - AP)",
            v("accounts_receivable_value") + v("inventory_value") - v("accounts_payable_value"),
            v("working_capital_value"),
            tolerances.currency,
        ),
        _check(
            ConsistencyCheckEnum.WC_DAYS,
            label,
            "Cash conversion cycle (AR days + inventory days - AP days)",
            v("ar_days") + v("inventory_days") - v("ap_days"),
            v("wc_days"),
            tolerances.days,
        ),
        _check(
            ConsistencyCheckEnum.BS_EQUATION,
            label,
            "Balance sheet (liabilities + equity + difference)",
            v("estimated_total_liabilities") + v("equity") + v("balance_sheet_difference"),
            v("estimated_total_assets"),
            tolerances.currency,
        ),
        _check(
            ConsistencyCheckEnum.CASH_RECONCILIATION,
            label,
            "Closing cash (opening cash + net change in cash)",
            v("opening_cash") + v("net_change_in_cash"),
            v("closing_cash"),
            tolerances.currency,
        ),
    ]
    return [issue for issue in checks if issue is not None]


def validate_series_consistency(
    periods: Sequence[PeriodLike],
    labels: Optional[Sequence[str]] = None,
    settings: Optional[EngineSettings] = None,
) -> List[ConsistencyIssue]:
    """
    Run the per-period checks on every period plus cash continuity.

    Continuity (`opening_cash[i] == closing_cash[i-1]`) is exact; no
    tolerance applies.

    Args:
        periods: Derived periods in chronological order
        labels: One label per period; defaults to "Period 1", "Period 2", ...
        settings: Tolerances for the per-period checks
    """
    labels = resolve_labels(periods, labels)

    issues: List[ConsistencyIssue] = []
    for index, (period, label) in enumerate(zip(periods, labels)):
        issues.extend(validate_internal_ssot_consistency(period, label, settings))
        if index == 0:
            continue
        expected = _value(periods[index - 1], "closing_cash")
        actual = _value(period, "opening_cash")
        if actual != expected:
            issues.append(
                ConsistencyIssue(
                    type=ConsistencyCheckEnum.CASH_CONTINUITY,
                    period_label=label,
                    message=(
                        f"{label}: opening cash {actual:,.2f} differs from "
                        f"{labels[index - 1]} closing cash {expected:,.2f}"
                    ),
                    expected=expected,
                    actual=actual,
                )
            )

    if issues:
        logger.warning(f"Consistency check found {len(issues)} issue(s) in {len(periods)} periods")
    return issues


def summarize_issues(issues: Sequence[ConsistencyIssue]) -> Dict[str, Any]:
    """
    Count issues by severity and by check type.

    Returns:
        Dict with `total`, `passes` (no critical errors), `by_severity` and `by_type`
    """
    by_severity = {severity.value: 0 for severity in SeverityEnum}
    by_type: Dict[str, int] = {}
    for issue in issues:
        by_severity[issue.severity.value] += 1
        by_type[issue.type.value] = by_type.get(issue.type.value, 0) + 1

    return {
        "total": len(issues),
        "passes": by_severity[SeverityEnum.CRITICAL_ERROR.value] == 0,
        "by_severity": by_severity,
        "by_type": by_type,
    }
