# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Per-Period Derivation Engine

`derive_period` turns one period's sparse drivers into a fully populated
`CalculatedPeriodData`. Stages run in a fixed order (income statement,
working capital, cash flow, balance sheet) and every stage passes its
computed value through the period's `OverrideSet` before any later stage
reads it.

The function is pure: it reads the caller's mapping and the prior period's
record and returns a new record. It assumes input already passed
`validate_all_fields`; non-numeric or non-finite values still abort with a
`DerivationError` rather than leaking NaN into the statements.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Mapping, Optional

from ..core.exceptions import DerivationError
from ..core.primitives import EngineSettings, LineItem
from ..fields.registry import FIELD_DESCRIPTORS, read_raw
from ..utils import parse_number, percent_of
from .overrides import OverrideSet
from .records import CalculatedPeriodData

logger = logging.getLogger(__name__)


def parse_inputs(raw: Mapping[str, Any], period_index: int) -> Dict[str, Optional[float]]:
    """
    Parse every registered field of one period into floats (None when blank).

    Fields flagged `first_period_only` are dropped after period 0.

    Raises:
        DerivationError: If a value is not numeric, NaN or infinite
    """
    if not isinstance(raw, Mapping):
        raise DerivationError(
            f"Period input must be a mapping, got {type(raw).__name__}", period_index
        )

    inputs: Dict[str, Optional[float]] = {}
    for descriptor in FIELD_DESCRIPTORS:
        if descriptor.first_period_only and period_index > 0:
            inputs[descriptor.key] = None
            continue
        try:
            value = parse_number(read_raw(raw, descriptor))
        except ValueError as e:
            raise DerivationError(
                f"{descriptor.label} ({descriptor.key}) is not numeric: {e}",
                period_index,
                descriptor.key,
            ) from e
        if value is not None and not math.isfinite(value):
            raise DerivationError(
                f"{descriptor.label} ({descriptor.key}) must be finite, got {value}",
                period_index,
                descriptor.key,
            )
        inputs[descriptor.key] = value
    return inputs


def _days(average: float, denominator: float, days_in_period: float, decimals: int) -> float:
    # Zero or negative denominators carry no meaningful turnover
    if denominator <= 0:
        return 0.0
    return round(average / denominator * days_in_period, decimals)


def derive_period(
    raw: Mapping[str, Any],
    prior: Optional[CalculatedPeriodData],
    period_index: int,
    settings: Optional[EngineSettings] = None,
) -> CalculatedPeriodData:
    """
    Derive the complete statements for one period.

    Args:
        raw: Caller-owned input mapping (Python keys or wire aliases)
        prior: Derived record of period `period_index - 1`, None for period 0
        period_index: 0-based chronological index
        settings: Engine settings; defaults to annual periods

    Returns:
        New CalculatedPeriodData; neither `raw` nor `prior` is modified

    Raises:
        DerivationError: On non-numeric/non-finite input or a missing prior period

    Example:
        ```python
        p0 = derive_period({"revenue": 1_000_000, "gross_margin_percentage": 45,
                            "operating_expenses": 300_000,
                            "depreciation_and_amortisation": 20_000}, None, 0)
        p0.ebit  # 130000.0
        ```
    """
    settings = settings or EngineSettings()
    if period_index < 0:
        raise DerivationError(f"period_index must be >= 0, got {period_index}")
    if prior is None and period_index > 0:
        raise DerivationError("Prior period result is required after period 0", period_index)

    inputs = parse_inputs(raw, period_index)
    overrides = OverrideSet.from_inputs(inputs)

    def driver(key: str) -> float:
        value = inputs[key]
        return 0.0 if value is None else value

    # === Income statement ===
    revenue = driver("revenue")
    gross_margin = driver("gross_margin_percentage") / 100.0
    operating_expenses = driver("operating_expenses")
    depreciation = driver("depreciation_and_amortisation")
    net_financial_result = driver("net_interest_expense_income")
    extraordinary_items = driver("extraordinary_items")
    tax_rate = driver("income_tax_rate_percentage") / 100.0

    cogs = overrides.apply(LineItem.COGS, revenue * (1.0 - gross_margin))
    gross_profit = overrides.apply(LineItem.GROSS_PROFIT, revenue - cogs)
    ebitda = overrides.apply(LineItem.EBITDA, gross_profit - operating_expenses)
    ebit = overrides.apply(LineItem.EBIT, ebitda - depreciation)
    pbt = overrides.apply(LineItem.PBT, ebit + net_financial_result + extraordinary_items)
    income_tax = overrides.apply(LineItem.INCOME_TAX, max(pbt, 0.0) * tax_rate)
    net_profit = overrides.apply(LineItem.NET_PROFIT, pbt - income_tax)

    dividends = driver("dividends_paid")
    retained_profit = net_profit - dividends

    # === Working capital ===
    # Averages drive the day metrics; closing-balance overrides only replace
    # the balances that feed working capital and the balance sheet.
    ar_avg = driver("accounts_receivable_value_avg")
    inventory_avg = driver("inventory_value_avg")
    ap_avg = driver("accounts_payable_value_avg")

    ar_value = overrides.apply(LineItem.AR_ENDING, ar_avg)
    inventory_value = overrides.apply(LineItem.INVENTORY_ENDING, inventory_avg)
    ap_value = overrides.apply(LineItem.AP_ENDING, ap_avg)

    days_in_period = settings.days_in_period
    decimals = settings.days_decimals
    ar_days = _days(ar_avg, revenue, days_in_period, decimals)
    inventory_days = _days(inventory_avg, cogs, days_in_period, decimals)
    ap_days = _days(ap_avg, cogs, days_in_period, decimals)
    wc_days = round(ar_days + inventory_days - ap_days, decimals)

    working_capital_value = ar_value + inventory_value - ap_value
    working_capital_change = overrides.apply(
        LineItem.WORKING_CAPITAL_CHANGE,
        working_capital_value - prior.working_capital_value if prior is not None else 0.0,
    )

    # === Cash flow ===
    capex = driver("capital_expenditures")
    total_bank_loans = driver("total_bank_loans")

    operating_cash_flow = overrides.apply(
        LineItem.OPERATING_CASH_FLOW, net_profit + depreciation
    )
    cash_from_ops_after_wc = operating_cash_flow - working_capital_change
    net_cash_flow_before_financing = cash_from_ops_after_wc - capex

    if prior is not None:
        change_in_debt = total_bank_loans - (prior.total_bank_loans or 0.0)
    else:
        change_in_debt = 0.0
    cash_flow_from_financing = change_in_debt - dividends
    net_change_in_cash = net_cash_flow_before_financing + cash_flow_from_financing

    opening_cash = prior.closing_cash if prior is not None else driver("opening_cash")
    calculated_closing_cash = opening_cash + net_change_in_cash
    closing_cash = overrides.apply(LineItem.CLOSING_CASH, calculated_closing_cash)

    # === Balance sheet estimate ===
    net_fixed_assets = driver("net_fixed_assets")
    estimated_current_assets = overrides.apply(
        LineItem.TOTAL_CURRENT_ASSETS, closing_cash + ar_value + inventory_value
    )
    estimated_total_assets = overrides.apply(
        LineItem.TOTAL_ASSETS, estimated_current_assets + net_fixed_assets
    )
    estimated_current_liabilities = overrides.apply(
        LineItem.TOTAL_CURRENT_LIABILITIES, ap_value
    )
    estimated_non_current_liabilities = total_bank_loans
    estimated_total_liabilities = overrides.apply(
        LineItem.TOTAL_LIABILITIES,
        estimated_current_liabilities + estimated_non_current_liabilities,
    )

    opening_equity = prior.equity if prior is not None else driver("initial_equity")
    equity = overrides.apply(LineItem.EQUITY_ENDING, opening_equity + retained_profit)
    balance_sheet_difference = estimated_total_assets - (estimated_total_liabilities + equity)

    # opening_cash is a derived value on the record, not the raw input
    recorded_inputs = {k: v for k, v in inputs.items() if k != "opening_cash"}

    result = CalculatedPeriodData(
        period_index=period_index,
        **recorded_inputs,
        # Income statement
        cogs=cogs,
        gross_profit=gross_profit,
        gm_pct=percent_of(gross_profit, revenue),
        ebitda=ebitda,
        ebitda_pct=percent_of(ebitda, revenue),
        ebit=ebit,
        op_profit_pct=percent_of(ebit, revenue),
        net_financial_result=net_financial_result,
        pbt=pbt,
        income_tax_rate_applied=tax_rate,
        income_tax=income_tax,
        net_profit=net_profit,
        net_profit_pct=percent_of(net_profit, revenue),
        retained_profit=retained_profit,
        # Working capital
        accounts_receivable_value=ar_value,
        inventory_value=inventory_value,
        accounts_payable_value=ap_value,
        ar_days=ar_days,
        inventory_days=inventory_days,
        ap_days=ap_days,
        wc_days=wc_days,
        working_capital_value=working_capital_value,
        working_capital_change=working_capital_change,
        ar_per_100_revenue=percent_of(ar_avg, revenue),
        inventory_per_100_revenue=percent_of(inventory_avg, revenue),
        ap_per_100_revenue=percent_of(ap_avg, cogs),
        wc_per_100_revenue=percent_of(working_capital_value, revenue),
        # Cash flow
        operating_cash_flow=operating_cash_flow,
        cash_from_ops_after_wc=cash_from_ops_after_wc,
        net_cash_flow_before_financing=net_cash_flow_before_financing,
        change_in_debt=change_in_debt,
        cash_flow_from_financing=cash_flow_from_financing,
        net_change_in_cash=net_change_in_cash,
        opening_cash=opening_cash,
        calculated_closing_cash=calculated_closing_cash,
        closing_cash=closing_cash,
        funding_gap_or_surplus=-net_cash_flow_before_financing,
        # Balance sheet
        estimated_current_assets=estimated_current_assets,
        estimated_total_assets=estimated_total_assets,
        estimated_current_liabilities=estimated_current_liabilities,
        estimated_non_current_liabilities=estimated_non_current_liabilities,
        estimated_total_liabilities=estimated_total_liabilities,
        equity=equity,
        balance_sheet_difference=balance_sheet_difference,
        applied_overrides=overrides.applied,
    )

    logger.debug(
        f"Derived period {period_index + 1}: revenue {revenue:,.2f}, "
        f"net profit {net_profit:,.2f}, closing cash {closing_cash:,.2f}, "
        f"BS difference {balance_sheet_difference:,.2f}"
    )
    return result
