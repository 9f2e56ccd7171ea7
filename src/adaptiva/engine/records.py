# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Calculated period record (the SSOT).

One immutable `CalculatedPeriodData` per period carries the parsed inputs
plus every derived line of the income statement, cash flow statement,
balance sheet estimate and working-capital schedule. All downstream
consumers read from this record; nothing recomputes statement lines.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from pydantic import Field

from ..core.primitives import LineItem, Model
from ..fields.registry import FIELD_DESCRIPTORS


class TrendDelta(Model):
    """Change of a headline metric versus the previous period."""

    change: Optional[float] = None
    change_pct: Optional[float] = None


class CalculatedPeriodData(Model):
    """
    Fully derived financial picture of one period.

    Input fields keep the caller's parsed values (None when blank).
    `opening_cash` is the opening balance actually used: the input value for
    period 0 and the prior period's closing cash afterwards.
    """

    period_index: int

    # --- Drivers (parsed input) ---
    revenue: Optional[float] = None
    gross_margin_percentage: Optional[float] = None
    operating_expenses: Optional[float] = None
    accounts_receivable_value_avg: Optional[float] = None
    inventory_value_avg: Optional[float] = None
    accounts_payable_value_avg: Optional[float] = None
    net_fixed_assets: Optional[float] = None
    total_bank_loans: Optional[float] = None
    initial_equity: Optional[float] = None
    depreciation_and_amortisation: Optional[float] = None
    net_interest_expense_income: Optional[float] = None
    income_tax_rate_percentage: Optional[float] = None
    dividends_paid: Optional[float] = None
    extraordinary_items: Optional[float] = None
    capital_expenditures: Optional[float] = None

    # --- Overrides (parsed input, wire keys match the field registry) ---
    override_cogs: Optional[float] = Field(default=None, alias="override_cogs")
    override_gross_profit: Optional[float] = Field(default=None, alias="override_grossProfit")
    override_ebitda: Optional[float] = Field(default=None, alias="override_ebitda")
    override_ebit: Optional[float] = Field(default=None, alias="override_ebit")
    override_pbt: Optional[float] = Field(default=None, alias="override_pbt")
    override_income_tax: Optional[float] = Field(default=None, alias="override_incomeTax")
    override_net_profit: Optional[float] = Field(default=None, alias="override_netProfit")
    override_ar_ending: Optional[float] = Field(default=None, alias="override_AR_ending")
    override_inventory_ending: Optional[float] = Field(
        default=None, alias="override_Inventory_ending"
    )
    override_ap_ending: Optional[float] = Field(default=None, alias="override_AP_ending")
    override_total_current_assets: Optional[float] = Field(
        default=None, alias="override_totalCurrentAssets"
    )
    override_total_assets: Optional[float] = Field(default=None, alias="override_totalAssets")
    override_total_current_liabilities: Optional[float] = Field(
        default=None, alias="override_totalCurrentLiabilities"
    )
    override_total_liabilities: Optional[float] = Field(
        default=None, alias="override_totalLiabilities"
    )
    override_equity_ending: Optional[float] = Field(default=None, alias="override_equity_ending")
    override_closing_cash: Optional[float] = Field(default=None, alias="override_closingCash")
    override_operating_cash_flow: Optional[float] = Field(
        default=None, alias="override_operatingCashFlow"
    )
    override_working_capital_change: Optional[float] = Field(
        default=None, alias="override_workingCapitalChange"
    )

    # --- Income statement ---
    cogs: float = 0.0
    gross_profit: float = 0.0
    gm_pct: float = 0.0
    ebitda: float = 0.0
    ebitda_pct: float = 0.0
    ebit: float = 0.0
    op_profit_pct: float = 0.0
    net_financial_result: float = 0.0
    pbt: float = 0.0
    income_tax_rate_applied: float = 0.0  # decimal, 0-1 scale
    income_tax: float = 0.0
    net_profit: float = 0.0
    net_profit_pct: float = 0.0
    retained_profit: float = 0.0

    # --- Working capital ---
    accounts_receivable_value: float = 0.0
    inventory_value: float = 0.0
    accounts_payable_value: float = 0.0
    ar_days: float = 0.0
    inventory_days: float = 0.0
    ap_days: float = 0.0
    wc_days: float = 0.0
    working_capital_value: float = 0.0
    working_capital_change: float = 0.0
    ar_per_100_revenue: float = 0.0
    inventory_per_100_revenue: float = 0.0
    ap_per_100_revenue: float = 0.0
    wc_per_100_revenue: float = 0.0

    # --- Cash flow ---
    operating_cash_flow: float = 0.0
    cash_from_ops_after_wc: float = 0.0
    net_cash_flow_before_financing: float = 0.0
    change_in_debt: float = 0.0
    cash_flow_from_financing: float = 0.0
    net_change_in_cash: float = 0.0
    opening_cash: float = 0.0
    calculated_closing_cash: float = 0.0
    closing_cash: float = 0.0
    funding_gap_or_surplus: float = 0.0

    # --- Balance sheet estimate ---
    estimated_current_assets: float = 0.0
    estimated_total_assets: float = 0.0
    estimated_current_liabilities: float = 0.0
    estimated_non_current_liabilities: float = 0.0
    estimated_total_liabilities: float = 0.0
    equity: float = 0.0
    balance_sheet_difference: float = 0.0

    # --- Bookkeeping ---
    applied_overrides: Tuple[LineItem, ...] = ()
    trends: Dict[str, TrendDelta] = Field(default_factory=dict)


_unmapped = [d.key for d in FIELD_DESCRIPTORS if d.key not in CalculatedPeriodData.model_fields]
if _unmapped:
    raise RuntimeError(f"CalculatedPeriodData is missing registry fields: {_unmapped}")
