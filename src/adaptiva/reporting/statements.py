# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Financial Statement Reports

Presentation-ready pandas views of the derived periods. Each report is a
DataFrame where rows are line items and columns are periods, the standard
pro forma layout charts and exports consume.
"""

from __future__ import annotations

from typing import ClassVar, List, NamedTuple, Sequence, Tuple

import pandas as pd

from ..engine.records import CalculatedPeriodData
from .base import BaseReport


class Line(NamedTuple):
    """One statement row; ratios, day counts and balances are not summable across periods."""

    label: str
    attr: str
    summable: bool = True


class StatementReport(BaseReport):
    """Report driven by a fixed table of line items."""

    LINES: ClassVar[Tuple[Line, ...]] = ()

    def generate(self, include_totals_column: bool = False) -> pd.DataFrame:
        """
        Generate the statement.

        Args:
            include_totals_column: Add a "Total" column summing across periods;
                rows that are not summable (ratios, days, balances) are left blank

        Returns:
            DataFrame where rows are line items and columns are period labels
        """
        index = [line.label for line in self.LINES]
        if not self._periods:
            return pd.DataFrame(index=index, dtype=float)

        data = {
            # Blank optional drivers show as 0
            column: [getattr(period, line.attr) or 0.0 for line in self.LINES]
            for column, period in zip(self._labels, self._periods)
        }
        df = pd.DataFrame(data, index=index, dtype=float)
        df.index.name = "Line Item"

        if include_totals_column:
            summable = [line.summable for line in self.LINES]
            df["Total"] = df.sum(axis=1).where(summable)
        return df


class IncomeStatementReport(StatementReport):
    """Income statement from revenue down to retained profit."""

    LINES = (
        Line("Net Revenue", "revenue"),
        Line("Cost of Goods Sold", "cogs"),
        Line("Gross Profit", "gross_profit"),
        Line("Gross Margin %", "gm_pct", summable=False),
        Line("Operating Expenses", "operating_expenses"),
        Line("EBITDA", "ebitda"),
        Line("EBITDA Margin %", "ebitda_pct", summable=False),
        Line("Depreciation & Amortisation", "depreciation_and_amortisation"),
        Line("EBIT", "ebit"),
        Line("Operating Margin %", "op_profit_pct", summable=False),
        Line("Net Financial Result", "net_financial_result"),
        Line("Extraordinary Items", "extraordinary_items"),
        Line("Profit Before Tax", "pbt"),
        Line("Income Tax", "income_tax"),
        Line("Net Profit", "net_profit"),
        Line("Net Margin %", "net_profit_pct", summable=False),
        Line("Dividends Paid", "dividends_paid"),
        Line("Retained Profit", "retained_profit"),
    )


class CashFlowReport(StatementReport):
    """Indirect-method cash flow statement."""

    LINES = (
        Line("Net Profit", "net_profit"),
        Line("Depreciation & Amortisation", "depreciation_and_amortisation"),
        Line("Operating Cash Flow", "operating_cash_flow"),
        Line("Working Capital Change", "working_capital_change"),
        Line("Cash from Operations after WC", "cash_from_ops_after_wc"),
        Line("Capital Expenditures", "capital_expenditures"),
        Line("Net Cash Flow before Financing", "net_cash_flow_before_financing"),
        Line("Change in Debt", "change_in_debt"),
        Line("Dividends Paid", "dividends_paid"),
        Line("Cash Flow from Financing", "cash_flow_from_financing"),
        Line("Net Change in Cash", "net_change_in_cash"),
        Line("Opening Cash", "opening_cash", summable=False),
        Line("Closing Cash", "closing_cash", summable=False),
        Line("Funding Gap / (Surplus)", "funding_gap_or_surplus"),
    )


class BalanceSheetReport(StatementReport):
    """Estimated closing balance sheet."""

    LINES = (
        Line("Cash", "closing_cash"),
        Line("Accounts Receivable", "accounts_receivable_value"),
        Line("Inventory", "inventory_value"),
        Line("Total Current Assets", "estimated_current_assets"),
        Line("Net Fixed Assets", "net_fixed_assets"),
        Line("Total Assets", "estimated_total_assets"),
        Line("Accounts Payable", "accounts_payable_value"),
        Line("Total Current Liabilities", "estimated_current_liabilities"),
        Line("Bank Loans", "estimated_non_current_liabilities"),
        Line("Total Liabilities", "estimated_total_liabilities"),
        Line("Equity", "equity"),
        Line("Balance Sheet Difference", "balance_sheet_difference"),
    )

    def generate(self, include_totals_column: bool = False) -> pd.DataFrame:
        # Balances are point-in-time; a sum across periods has no meaning
        if include_totals_column:
            raise ValueError("Balance sheet balances cannot be totalled across periods")
        return super().generate()


class WorkingCapitalReport(StatementReport):
    """Working-capital balances, days and cash conversion cycle."""

    LINES = (
        Line("Accounts Receivable", "accounts_receivable_value", summable=False),
        Line("Inventory", "inventory_value", summable=False),
        Line("Accounts Payable", "accounts_payable_value", summable=False),
        Line("Working Capital", "working_capital_value", summable=False),
        Line("Working Capital Change", "working_capital_change"),
        Line("AR Days", "ar_days", summable=False),
        Line("Inventory Days", "inventory_days", summable=False),
        Line("AP Days", "ap_days", summable=False),
        Line("Cash Conversion Cycle (Days)", "wc_days", summable=False),
        Line("AR per 100 Revenue", "ar_per_100_revenue", summable=False),
        Line("Inventory per 100 Revenue", "inventory_per_100_revenue", summable=False),
        Line("AP per 100 COGS", "ap_per_100_revenue", summable=False),
        Line("WC per 100 Revenue", "wc_per_100_revenue", summable=False),
    )


def to_dataframe(periods: Sequence[CalculatedPeriodData], by_alias: bool = False) -> pd.DataFrame:
    """
    Flatten derived periods into one row per period with every scalar SSOT field.

    `applied_overrides` becomes a comma-separated string and `trends` is
    left out; use the record itself for those.

    Args:
        periods: Output of `derive_all`
        by_alias: Use camelCase wire keys as column names

    Returns:
        DataFrame indexed by `period_index`
    """
    rows: List[dict] = []
    for period in periods:
        row = period.model_dump(by_alias=by_alias, exclude={"trends"})
        key = "appliedOverrides" if by_alias else "applied_overrides"
        row[key] = ", ".join(item.value for item in period.applied_overrides)
        rows.append(row)

    if not rows:
        return pd.DataFrame()

    index_key = "periodIndex" if by_alias else "period_index"
    return pd.DataFrame(rows).set_index(index_key)
