# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Field Definition Registry

Declarative metadata for every driver and override field accepted by the
derivation engine. Each field is a tagged, immutable `FieldDescriptor`;
per-field checks are named `FieldRule` objects that receive
`(value, period, all_periods, period_index)` so rules can look across
periods. Override keys resolve to `LineItem` members through an explicit
lookup table built once at import time.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..core.primitives import (
    FieldCategoryEnum,
    FieldTypeEnum,
    LineItem,
    Model,
    StatementGroupEnum,
    ValidationCodeEnum,
)

# (value, period, all_periods, period_index) -> (code, message) or None
RuleCheck = Callable[
    [float, Mapping[str, Any], Sequence[Mapping[str, Any]], int],
    Optional[Tuple[ValidationCodeEnum, str]],
]


class FieldRule(Model):
    """A named validation rule attached to a field descriptor."""

    name: str
    check: RuleCheck


class FieldDescriptor(Model):
    """
    Static metadata for one input field.

    Attributes:
        key: Python key used throughout the engine (snake_case)
        alias: Wire key used by spreadsheet templates and the transport
        label: Human-readable label used in validation messages
        field_type: Unit of the value
        category: Driver or override category
        group: Statement the field belongs to
        required: Missing/blank values raise MISSING_REQUIRED
        first_period_only: Field is only meaningful for period index 0
        note: Free-form guidance for input forms
        overrides: Line item replaced by this field (override fields only)
        rules: Checks applied to non-blank numeric values
    """

    key: str
    alias: str
    label: str
    field_type: FieldTypeEnum = FieldTypeEnum.CURRENCY
    category: FieldCategoryEnum
    group: StatementGroupEnum
    required: bool = False
    first_period_only: bool = False
    note: Optional[str] = None
    overrides: Optional[LineItem] = None
    rules: Tuple[FieldRule, ...] = ()

    @property
    def is_override(self) -> bool:
        return self.category.is_override


# --- Rule factories ---


def non_negative(message: str) -> FieldRule:
    def check(value, period, all_periods, period_index):
        if value < 0:
            return ValidationCodeEnum.OUT_OF_RANGE, message
        return None

    return FieldRule(name="non_negative", check=check)


def between(minimum: float, maximum: float, message: str) -> FieldRule:
    def check(value, period, all_periods, period_index):
        if value < minimum or value > maximum:
            return ValidationCodeEnum.OUT_OF_RANGE, message
        return None

    return FieldRule(name=f"between_{minimum:g}_{maximum:g}", check=check)


def at_most(maximum: float, message: str) -> FieldRule:
    def check(value, period, all_periods, period_index):
        if value > maximum:
            return ValidationCodeEnum.OUT_OF_RANGE, message
        return None

    return FieldRule(name=f"at_most_{maximum:g}", check=check)


def _driver(
    key: str,
    alias: str,
    label: str,
    *,
    required: bool,
    group: StatementGroupEnum,
    field_type: FieldTypeEnum = FieldTypeEnum.CURRENCY,
    first_period_only: bool = False,
    note: Optional[str] = None,
    rules: Tuple[FieldRule, ...] = (),
) -> FieldDescriptor:
    return FieldDescriptor(
        key=key,
        alias=alias,
        label=label,
        field_type=field_type,
        category=(
            FieldCategoryEnum.DRIVER_REQUIRED if required else FieldCategoryEnum.DRIVER_OPTIONAL
        ),
        group=group,
        required=required,
        first_period_only=first_period_only,
        note=note,
        rules=rules,
    )


_OVERRIDE_GROUPS = {
    FieldCategoryEnum.OVERRIDE_PL: StatementGroupEnum.PROFIT_AND_LOSS,
    FieldCategoryEnum.OVERRIDE_BS: StatementGroupEnum.BALANCE_SHEET,
    FieldCategoryEnum.OVERRIDE_CF: StatementGroupEnum.CASH_FLOW,
}


def _override(
    line_item: LineItem,
    alias: str,
    label: str,
    category: FieldCategoryEnum,
    note: Optional[str] = None,
) -> FieldDescriptor:
    return FieldDescriptor(
        key=f"override_{line_item.value}",
        alias=alias,
        label=label,
        category=category,
        group=_OVERRIDE_GROUPS[category],
        note=note,
        overrides=line_item,
    )


PL = StatementGroupEnum.PROFIT_AND_LOSS
BS = StatementGroupEnum.BALANCE_SHEET
CF = StatementGroupEnum.CASH_FLOW

FIELD_DESCRIPTORS: Tuple[FieldDescriptor, ...] = (
    # ===== Core drivers =====
    _driver(
        "revenue", "revenue", "Net Revenue", required=True, group=PL,
        rules=(
            non_negative("Revenue cannot be negative."),
            at_most(1e12, "Revenue looks too large. Check the scale (units vs thousands)."),
        ),
    ),
    _driver(
        "gross_margin_percentage", "grossMarginPercentage", "Gross Margin %",
        required=True, group=PL, field_type=FieldTypeEnum.PERCENTAGE,
        note="e.g. 40 for 40%. Used to derive COGS.",
        rules=(between(-100, 100, "Gross Margin must be between -100% and 100%."),),
    ),
    _driver(
        "operating_expenses", "operatingExpenses", "Total Operating Expenses (SG&A)",
        required=True, group=PL,
        rules=(non_negative("Operating Expenses cannot be negative."),),
    ),
    _driver(
        "opening_cash", "openingCash", "Opening Cash", required=True, group=BS,
        first_period_only=True, note="First period of the series only.",
        rules=(non_negative("Opening Cash cannot be negative."),),
    ),
    _driver(
        "accounts_receivable_value_avg", "accountsReceivableValueAvg",
        "Accounts Receivable (Period Average)", required=True, group=BS,
        rules=(non_negative("Accounts Receivable cannot be negative."),),
    ),
    _driver(
        "inventory_value_avg", "inventoryValueAvg", "Inventory (Period Average)",
        required=True, group=BS,
        rules=(non_negative("Inventory cannot be negative."),),
    ),
    _driver(
        "accounts_payable_value_avg", "accountsPayableValueAvg",
        "Accounts Payable (Period Average)", required=True, group=BS,
        rules=(non_negative("Accounts Payable cannot be negative."),),
    ),
    _driver(
        "net_fixed_assets", "netFixedAssets", "Net Fixed Assets (Closing Balance)",
        required=True, group=BS,
        rules=(non_negative("Net Fixed Assets cannot be negative."),),
    ),
    _driver(
        "total_bank_loans", "totalBankLoans", "Total Bank Loans (Closing Balance)",
        required=True, group=BS, note="May be 0.",
        rules=(non_negative("Bank Loans cannot be negative."),),
    ),
    _driver(
        "initial_equity", "initialEquity", "Opening Equity", required=True, group=BS,
        first_period_only=True, note="First period of the series only.",
    ),
    # ===== Optional drivers =====
    _driver(
        "depreciation_and_amortisation", "depreciationAndAmortisation",
        "Depreciation & Amortisation", required=False, group=PL,
        rules=(non_negative("Depreciation & Amortisation cannot be negative."),),
    ),
    _driver(
        "net_interest_expense_income", "netInterestExpenseIncome",
        "Net Financial Result (Interest)", required=False, group=PL,
        note="Negative for a net expense.",
    ),
    _driver(
        "income_tax_rate_percentage", "incomeTaxRatePercentage", "Effective Income Tax Rate %",
        required=False, group=PL, field_type=FieldTypeEnum.PERCENTAGE,
        note="e.g. 25 for 25%. Applied to positive PBT; no tax when blank.",
        rules=(between(0, 100, "Income Tax Rate must be between 0% and 100%."),),
    ),
    _driver(
        "dividends_paid", "dividendsPaid", "Dividends Paid / Distributions",
        required=False, group=CF,
        rules=(non_negative("Dividends cannot be negative."),),
    ),
    _driver(
        "extraordinary_items", "extraordinaryItems", "Extraordinary Items (Net)",
        required=False, group=PL, note="Positive for a gain, negative for a loss.",
    ),
    _driver(
        "capital_expenditures", "capitalExpenditures", "Capital Expenditures (CAPEX)",
        required=False, group=CF,
        rules=(non_negative("CAPEX cannot be negative (it represents an acquisition)."),),
    ),
    # ===== Income statement overrides =====
    _override(LineItem.COGS, "override_cogs", "COGS (Actual)",
              FieldCategoryEnum.OVERRIDE_PL, note="Replaces the Gross Margin % derivation."),
    _override(LineItem.GROSS_PROFIT, "override_grossProfit", "Gross Profit (Actual)",
              FieldCategoryEnum.OVERRIDE_PL, note="Replaces Revenue - COGS."),
    _override(LineItem.EBITDA, "override_ebitda", "EBITDA (Actual)",
              FieldCategoryEnum.OVERRIDE_PL, note="Replaces Gross Profit - Operating Expenses."),
    _override(LineItem.EBIT, "override_ebit", "EBIT / Operating Profit (Actual)",
              FieldCategoryEnum.OVERRIDE_PL),
    _override(LineItem.PBT, "override_pbt", "Profit Before Tax (Actual)",
              FieldCategoryEnum.OVERRIDE_PL),
    _override(LineItem.INCOME_TAX, "override_incomeTax", "Income Tax (Actual)",
              FieldCategoryEnum.OVERRIDE_PL),
    _override(LineItem.NET_PROFIT, "override_netProfit", "Net Profit (Actual)",
              FieldCategoryEnum.OVERRIDE_PL),
    # ===== Balance sheet overrides =====
    _override(LineItem.AR_ENDING, "override_AR_ending", "Accounts Receivable (Actual Closing Balance)",
              FieldCategoryEnum.OVERRIDE_BS,
              note="Closing balance. The period average is used when blank."),
    _override(LineItem.INVENTORY_ENDING, "override_Inventory_ending",
              "Inventory (Actual Closing Balance)", FieldCategoryEnum.OVERRIDE_BS),
    _override(LineItem.AP_ENDING, "override_AP_ending", "Accounts Payable (Actual Closing Balance)",
              FieldCategoryEnum.OVERRIDE_BS),
    _override(LineItem.TOTAL_CURRENT_ASSETS, "override_totalCurrentAssets",
              "Total Current Assets (Actual)", FieldCategoryEnum.OVERRIDE_BS),
    _override(LineItem.TOTAL_ASSETS, "override_totalAssets", "Total Assets (Actual)",
              FieldCategoryEnum.OVERRIDE_BS),
    _override(LineItem.TOTAL_CURRENT_LIABILITIES, "override_totalCurrentLiabilities",
              "Total Current Liabilities (Actual)", FieldCategoryEnum.OVERRIDE_BS),
    _override(LineItem.TOTAL_LIABILITIES, "override_totalLiabilities", "Total Liabilities (Actual)",
              FieldCategoryEnum.OVERRIDE_BS),
    _override(LineItem.EQUITY_ENDING, "override_equity_ending", "Equity (Actual Closing Balance)",
              FieldCategoryEnum.OVERRIDE_BS),
    # ===== Cash flow overrides =====
    _override(LineItem.CLOSING_CASH, "override_closingCash", "Closing Cash (Actual)",
              FieldCategoryEnum.OVERRIDE_CF,
              note="Displayed instead of the cash-flow result and reconciled against it."),
    _override(LineItem.OPERATING_CASH_FLOW, "override_operatingCashFlow",
              "Operating Cash Flow (Actual)", FieldCategoryEnum.OVERRIDE_CF),
    _override(LineItem.WORKING_CAPITAL_CHANGE, "override_workingCapitalChange",
              "Working Capital Change (Actual)", FieldCategoryEnum.OVERRIDE_CF,
              note="Positive = cash used."),
)

FIELD_REGISTRY: Dict[str, FieldDescriptor] = {d.key: d for d in FIELD_DESCRIPTORS}
ALIAS_TO_KEY: Dict[str, str] = {d.alias: d.key for d in FIELD_DESCRIPTORS}
OVERRIDE_KEYS: Dict[LineItem, str] = {
    d.overrides: d.key for d in FIELD_DESCRIPTORS if d.overrides is not None
}

_missing = [item.value for item in LineItem if item not in OVERRIDE_KEYS]
_untagged = [d.key for d in FIELD_DESCRIPTORS if d.is_override and d.overrides is None]
if _missing or _untagged or len(FIELD_REGISTRY) != len(FIELD_DESCRIPTORS):
    raise RuntimeError(
        f"Field registry is inconsistent: line items without override {_missing}, "
        f"override fields without line item {_untagged}"
    )


CategoryArg = Union[None, str, FieldCategoryEnum, Iterable[Union[str, FieldCategoryEnum]]]


def get_field_keys(categories: CategoryArg = None) -> List[str]:
    """
    Return field keys in registry order, optionally filtered by category.

    Args:
        categories: A single category, an iterable of categories, or None for all

    Example:
        ```python
        get_field_keys(FieldCategoryEnum.DRIVER_REQUIRED)
        get_field_keys(["override_pl", "override_cf"])
        ```
    """
    if categories is None:
        return [d.key for d in FIELD_DESCRIPTORS]
    if isinstance(categories, (str, FieldCategoryEnum)):
        categories = [categories]
    wanted = {FieldCategoryEnum(c) for c in categories}
    return [d.key for d in FIELD_DESCRIPTORS if d.category in wanted]


def get_driver_field_keys() -> List[str]:
    return get_field_keys([FieldCategoryEnum.DRIVER_REQUIRED, FieldCategoryEnum.DRIVER_OPTIONAL])


def get_override_field_keys(group: Union[None, str, StatementGroupEnum] = None) -> List[str]:
    """Override keys, optionally restricted to one statement group."""
    keys = [d.key for d in FIELD_DESCRIPTORS if d.is_override]
    if group is None:
        return keys
    group = StatementGroupEnum(group)
    return [k for k in keys if FIELD_REGISTRY[k].group == group]


def is_override_field(key: str) -> bool:
    descriptor = FIELD_REGISTRY.get(ALIAS_TO_KEY.get(key, key))
    return descriptor is not None and descriptor.is_override


def get_field(key: str) -> FieldDescriptor:
    """
    Look up a descriptor by Python key or wire alias.

    Raises:
        KeyError: If the key is not registered
    """
    resolved = ALIAS_TO_KEY.get(key, key)
    try:
        return FIELD_REGISTRY[resolved]
    except KeyError:
        raise KeyError(f"Unknown field '{key}'") from None


def key_for_alias(alias: str) -> str:
    """Python key for a wire alias; unknown names are returned unchanged."""
    return ALIAS_TO_KEY.get(alias, alias)


def read_raw(period: Mapping[str, Any], descriptor: FieldDescriptor) -> Any:
    """Raw value for a field, looked up by Python key first, then by wire alias."""
    if descriptor.key in period:
        return period[descriptor.key]
    return period.get(descriptor.alias)
