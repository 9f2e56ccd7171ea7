# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Statement Constraints, Override Consistency and Business Rules

Advisory checks layered on top of the accounting identities in
`adaptiva.reporting.consistency`. Like those, they read finished periods
(or mappings shaped like them), return `ConsistencyIssue` records and never
raise on bad numbers.

- Statement constraints: the P&L chain, current vs total balances, the
  cash flow build-up, closing-cash overrides and the equity bridge.
- Override consistency: COGS and gross profit overrides that contradict
  revenue, and periods with an excessive number of overrides.
- Business rules: working-capital days, margin swings, balance sheet
  difference as a share of assets, effective tax rate and operating cash
  flow versus profit.

Monetary equations use a relative tolerance (`RuleThresholds.relative_tolerance`
of the reference amount) with an absolute floor, so large statements are not
flagged for rounding noise.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence

from ..core.primitives import (
    ConsistencyCheckEnum,
    EngineSettings,
    LineItem,
    SeverityEnum,
)
from ..fields.registry import FIELD_REGISTRY, OVERRIDE_KEYS, read_raw
from ..utils import parse_number
from .consistency import (
    ConsistencyIssue,
    PeriodLike,
    _value,
    resolve_labels,
    validate_series_consistency,
)

logger = logging.getLogger(__name__)


def _tolerance(amount: float, floor: float, relative: float) -> float:
    return max(abs(amount) * relative, floor)


def _issue(
    check: ConsistencyCheckEnum,
    label: str,
    message: str,
    severity: SeverityEnum,
    expected: Optional[float] = None,
    actual: Optional[float] = None,
) -> ConsistencyIssue:
    return ConsistencyIssue(
        type=check,
        period_label=label,
        message=f"{label}: {message}",
        severity=severity,
        expected=expected,
        actual=actual,
    )


def _override(period: PeriodLike, item: LineItem) -> Optional[float]:
    """Parsed override value for `item`; None when blank or not numeric."""
    descriptor = FIELD_REGISTRY[OVERRIDE_KEYS[item]]
    if isinstance(period, Mapping):
        raw = read_raw(period, descriptor)
    else:
        raw = getattr(period, descriptor.key, None)
    try:
        value = parse_number(raw)
    except ValueError:
        return None
    if value is None or not math.isfinite(value):
        return None
    return value


def active_overrides(period: PeriodLike) -> Dict[LineItem, float]:
    """Line items with a usable override value in `period`."""
    values = {item: _override(period, item) for item in OVERRIDE_KEYS}
    return {item: value for item, value in values.items() if value is not None}


def validate_override_consistency(
    period: PeriodLike,
    label: str,
    settings: Optional[EngineSettings] = None,
) -> List[ConsistencyIssue]:
    """
    Check the overrides of one period against each other and the drivers.

    Accepts a raw input mapping (Python keys or wire aliases) as well as a
    derived record, so it can run before or after derivation.

    Returns:
        A CRITICAL_ERROR when both COGS and gross profit are overridden and
        revenue - COGS differs from the gross profit override; a WARNING
        when more than `max_overrides` overrides are in use
    """
    thresholds = (settings or EngineSettings()).thresholds
    overrides = active_overrides(period)
    issues: List[ConsistencyIssue] = []

    cogs = overrides.get(LineItem.COGS)
    gross_profit = overrides.get(LineItem.GROSS_PROFIT)
    if cogs is not None and gross_profit is not None:
        revenue = _value(period, "revenue")
        implied = revenue - cogs
        if abs(implied - gross_profit) > _tolerance(revenue, 0.01, thresholds.relative_tolerance):
            issues.append(
                _issue(
                    ConsistencyCheckEnum.PL_OVERRIDE_INCONSISTENT,
                    label,
                    f"COGS override {cogs:,.2f} and gross profit override "
                    f"{gross_profit:,.2f} contradict revenue {revenue:,.2f}",
                    SeverityEnum.CRITICAL_ERROR,
                    expected=implied,
                    actual=gross_profit,
                )
            )

    if len(overrides) > thresholds.max_overrides:
        issues.append(
            _issue(
                ConsistencyCheckEnum.EXCESSIVE_OVERRIDES,
                label,
                f"{len(overrides)} overrides in use; consider revising the input drivers",
                SeverityEnum.WARNING,
                actual=float(len(overrides)),
            )
        )
    return issues


def validate_statement_constraints(
    period: PeriodLike,
    label: str,
    previous: Optional[PeriodLike] = None,
    settings: Optional[EngineSettings] = None,
) -> List[ConsistencyIssue]:
    """
    Check the statement build-up of one derived period.

    Args:
        period: Derived period
        label: Period label used in messages
        previous: The prior derived period; enables the equity bridge check
        settings: Tolerances and thresholds

    Returns:
        Issues in statement order: P&L equations (CRITICAL_ERROR), COGS above
        revenue (WARNING), material balance sheet difference (WARNING),
        current above total balances (CRITICAL_ERROR), cash build-up
        (CRITICAL_ERROR), closing-cash override impact (WARNING, or INFO when
        within tolerance) and the equity bridge (WARNING)
    """
    settings = settings or EngineSettings()
    thresholds = settings.thresholds
    floor = settings.tolerances.currency
    relative = thresholds.relative_tolerance

    def v(key: str) -> float:
        return _value(period, key)

    issues: List[ConsistencyIssue] = []

    # === Income statement ===
    revenue = v("revenue")
    cogs = v("cogs")
    gross_profit = v("gross_profit")
    ebitda = v("ebitda")
    ebit = v("ebit")
    pbt = v("pbt")
    equations = (
        (
            ConsistencyCheckEnum.GROSS_PROFIT_EQUATION,
            "Gross profit (revenue - COGS)",
            gross_profit,
            revenue - cogs,
            revenue,
        ),
        (
            ConsistencyCheckEnum.EBITDA_EQUATION,
            "EBITDA (gross profit - operating expenses)",
            ebitda,
            gross_profit - v("operating_expenses"),
            gross_profit,
        ),
        (
            ConsistencyCheckEnum.EBIT_EQUATION,
            "EBIT (EBITDA - D&A)",
            ebit,
            ebitda - v("depreciation_and_amortisation"),
            ebitda,
        ),
        (
            ConsistencyCheckEnum.PBT_EQUATION,
            "Profit before tax (EBIT + financial result + extraordinary items)",
            pbt,
            ebit + v("net_financial_result") + v("extraordinary_items"),
            ebit,
        ),
        (
            ConsistencyCheckEnum.NET_PROFIT_EQUATION,
            "Net profit (PBT - income tax)",
            v("net_profit"),
            pbt - v("income_tax"),
            pbt,
        ),
    )
    for check, description, stored, expected, base in equations:
        if abs(stored - expected) > _tolerance(base, floor, relative):
            issues.append(
                _issue(
                    check,
                    label,
                    f"{description} is inconsistent "
                    f"(stored {stored:,.2f}, expected {expected:,.2f})",
                    SeverityEnum.CRITICAL_ERROR,
                    expected=expected,
                    actual=stored,
                )
            )

    if revenue > 0 and cogs > revenue:
        issues.append(
            _issue(
                ConsistencyCheckEnum.COGS_HIGH,
                label,
                f"COGS {cogs:,.2f} exceeds revenue {revenue:,.2f}",
                SeverityEnum.WARNING,
                expected=revenue,
                actual=cogs,
            )
        )

    # === Balance sheet ===
    total_assets = v("estimated_total_assets")
    total_liabilities = v("estimated_total_liabilities")
    difference = v("balance_sheet_difference")
    if abs(difference) > _tolerance(total_assets, thresholds.material_imbalance, relative):
        share = (
            f"{abs(difference / total_assets) * 100:.1f}% of total assets"
            if total_assets != 0
            else "total assets are zero"
        )
        issues.append(
            _issue(
                ConsistencyCheckEnum.BS_IMBALANCE_MATERIAL,
                label,
                f"Material balance sheet difference of {difference:,.2f} ({share})",
                SeverityEnum.WARNING,
                expected=0.0,
                actual=difference,
            )
        )

    current_assets = v("estimated_current_assets")
    if total_assets != 0 and current_assets > total_assets:
        issues.append(
            _issue(
                ConsistencyCheckEnum.CURRENT_ASSETS_EXCEED_TOTAL,
                label,
                f"Current assets {current_assets:,.2f} exceed total assets {total_assets:,.2f}",
                SeverityEnum.CRITICAL_ERROR,
                expected=total_assets,
                actual=current_assets,
            )
        )
    current_liabilities = v("estimated_current_liabilities")
    if total_liabilities != 0 and current_liabilities > total_liabilities:
        issues.append(
            _issue(
                ConsistencyCheckEnum.CURRENT_LIABILITIES_EXCEED_TOTAL,
                label,
                f"Current liabilities {current_liabilities:,.2f} exceed "
                f"total liabilities {total_liabilities:,.2f}",
                SeverityEnum.CRITICAL_ERROR,
                expected=total_liabilities,
                actual=current_liabilities,
            )
        )

    # === Cash flow ===
    net_change = v("net_change_in_cash")
    built_up = (
        v("operating_cash_flow") - v("working_capital_change") - v("capital_expenditures")
    ) + (v("change_in_debt") - v("dividends_paid"))
    if abs(net_change - built_up) > _tolerance(net_change, floor, relative):
        issues.append(
            _issue(
                ConsistencyCheckEnum.NET_CHANGE_IN_CASH,
                label,
                f"Net change in cash {net_change:,.2f} does not equal the sum of "
                f"operating, investing and financing flows {built_up:,.2f}",
                SeverityEnum.CRITICAL_ERROR,
                expected=built_up,
                actual=net_change,
            )
        )

    if _override(period, LineItem.CLOSING_CASH) is not None:
        computed_closing = v("opening_cash") + net_change
        closing = v("closing_cash")
        reconciliation = closing - computed_closing
        if abs(reconciliation) > _tolerance(computed_closing, floor, relative):
            issues.append(
                _issue(
                    ConsistencyCheckEnum.CASH_OVERRIDE_IMPACT,
                    label,
                    f"Closing cash override {closing:,.2f} differs by {reconciliation:,.2f} "
                    f"from the cash flow result {computed_closing:,.2f}; the balance "
                    f"sheet reflects the override",
                    SeverityEnum.WARNING,
                    expected=computed_closing,
                    actual=closing,
                )
            )
        elif reconciliation != 0:
            issues.append(
                _issue(
                    ConsistencyCheckEnum.CASH_OVERRIDE_MATCH,
                    label,
                    f"Closing cash was overridden and agrees with the cash flow result "
                    f"(difference {reconciliation:,.2f})",
                    SeverityEnum.INFO,
                    expected=computed_closing,
                    actual=closing,
                )
            )

    # === Equity bridge ===
    if previous is not None:
        equity = v("equity")
        expected_equity = _value(previous, "equity") + v("retained_profit")
        if abs(equity - expected_equity) > _tolerance(equity, floor, relative):
            issues.append(
                _issue(
                    ConsistencyCheckEnum.EQUITY_BRIDGE,
                    label,
                    f"Prior equity plus retained profit ({expected_equity:,.2f}) "
                    f"does not equal equity {equity:,.2f}",
                    SeverityEnum.WARNING,
                    expected=expected_equity,
                    actual=equity,
                )
            )

    return issues


def validate_business_rules(
    periods: Sequence[PeriodLike],
    labels: Optional[Sequence[str]] = None,
    settings: Optional[EngineSettings] = None,
) -> List[ConsistencyIssue]:
    """
    Flag plausibility problems in every derived period.

    Margin swings compare each period with the one before it. A strongly
    negative cash conversion cycle is good news and comes back as INFO.
    """
    labels = resolve_labels(periods, labels)
    thresholds = (settings or EngineSettings()).thresholds
    issues: List[ConsistencyIssue] = []

    for index, (period, label) in enumerate(zip(periods, labels)):

        def v(key: str) -> float:
            return _value(period, key)

        # === Working capital ===
        inventory_days = v("inventory_days")
        if inventory_days != 0 and inventory_days < thresholds.min_inventory_days:
            issues.append(
                _issue(
                    ConsistencyCheckEnum.LOW_INVENTORY_DAYS,
                    label,
                    f"Inventory days very low ({inventory_days:.1f}); unless this is a "
                    f"services business, check COGS and average inventory",
                    SeverityEnum.WARNING,
                    actual=inventory_days,
                )
            )
        ap_days = v("ap_days")
        if ap_days > thresholds.max_ap_days:
            issues.append(
                _issue(
                    ConsistencyCheckEnum.HIGH_AP_DAYS,
                    label,
                    f"AP days very high ({ap_days:.1f}); supplier terms may not be sustainable",
                    SeverityEnum.WARNING,
                    actual=ap_days,
                )
            )
        wc_days = v("wc_days")
        if wc_days < thresholds.negative_cash_cycle_days:
            issues.append(
                _issue(
                    ConsistencyCheckEnum.NEGATIVE_CASH_CYCLE,
                    label,
                    f"Cash conversion cycle strongly negative ({wc_days:.1f} days); "
                    f"operations are funded by suppliers",
                    SeverityEnum.INFO,
                    actual=wc_days,
                )
            )
        elif wc_days > thresholds.max_cash_cycle_days:
            issues.append(
                _issue(
                    ConsistencyCheckEnum.HIGH_CASH_CYCLE,
                    label,
                    f"Cash conversion cycle very long ({wc_days:.1f} days); "
                    f"working-capital needs are high",
                    SeverityEnum.WARNING,
                    actual=wc_days,
                )
            )

        # === Margins ===
        if index > 0:
            previous = periods[index - 1]
            critical, warning = SeverityEnum.CRITICAL_ERROR, SeverityEnum.WARNING
            swings = (
                ("Gross margin", "gm_pct", thresholds.gross_margin_swing, critical),
                ("Net margin", "net_profit_pct", thresholds.net_margin_swing, warning),
            )
            for name, key, limit, severity in swings:
                change = v(key) - _value(previous, key)
                if abs(change) > limit:
                    issues.append(
                        _issue(
                            ConsistencyCheckEnum.MARGIN_VOLATILITY,
                            label,
                            f"{name} moved {change:+.1f} p.p. versus the prior period",
                            severity,
                            expected=_value(previous, key),
                            actual=v(key),
                        )
                    )

        # === Balance sheet ===
        total_assets = v("estimated_total_assets")
        if total_assets > 0:
            difference = v("balance_sheet_difference")
            share = abs(difference / total_assets) * 100
            if share > thresholds.bs_difference_warning_pct:
                is_critical = share > thresholds.bs_difference_critical_pct
                issues.append(
                    _issue(
                        ConsistencyCheckEnum.BS_DIFFERENCE_SHARE,
                        label,
                        f"Balance sheet difference {difference:,.2f} is {share:.1f}% "
                        f"of total assets",
                        SeverityEnum.CRITICAL_ERROR if is_critical else SeverityEnum.WARNING,
                        expected=0.0,
                        actual=difference,
                    )
                )

        # === Tax ===
        pbt = v("pbt")
        income_tax = v("income_tax")
        if pbt > 0 and income_tax > 0:
            effective_rate = income_tax / pbt * 100
            if effective_rate > thresholds.max_effective_tax_rate:
                issues.append(
                    _issue(
                        ConsistencyCheckEnum.HIGH_TAX_BURDEN,
                        label,
                        f"Income tax is {effective_rate:.1f}% of profit before tax",
                        SeverityEnum.WARNING,
                        actual=effective_rate,
                    )
                )

        # === Cash flow ===
        net_profit = v("net_profit")
        cash_profit = net_profit + v("depreciation_and_amortisation")
        operating_cash_flow = v("operating_cash_flow")
        if net_profit != 0 and abs(operating_cash_flow - cash_profit) > abs(
            net_profit * thresholds.cash_flow_divergence
        ):
            issues.append(
                _issue(
                    ConsistencyCheckEnum.CASH_FLOW_DIVERGENCE,
                    label,
                    f"Operating cash flow {operating_cash_flow:,.2f} diverges from "
                    f"net profit plus D&A {cash_profit:,.2f}",
                    SeverityEnum.WARNING,
                    expected=cash_profit,
                    actual=operating_cash_flow,
                )
            )

    return issues


def validate_financial_statements(
    periods: Sequence[PeriodLike],
    labels: Optional[Sequence[str]] = None,
    settings: Optional[EngineSettings] = None,
) -> List[ConsistencyIssue]:
    """
    Run every post-derivation check on a series of derived periods.

    Combines `validate_series_consistency` with the statement constraints,
    override consistency and business rules, in that order.

    Example:
        ```python
        issues = validate_financial_statements(derive_all(inputs))
        summary = summarize_issues(issues)
        ```
    """
    labels = resolve_labels(periods, labels)
    issues = validate_series_consistency(periods, labels, settings)
    for index, (period, label) in enumerate(zip(periods, labels)):
        previous = periods[index - 1] if index > 0 else None
        issues.extend(validate_statement_constraints(period, label, previous, settings))
        issues.extend(validate_override_consistency(period, label, settings))
    issues.extend(validate_business_rules(periods, labels, settings))

    if issues:
        logger.info(f"Financial statement checks raised {len(issues)} issue(s)")
    return issues
