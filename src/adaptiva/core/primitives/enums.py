# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class FrequencyEnum(str, Enum):
    """
    Length of one modelled period.

    Options:
        MONTHLY: Monthly
        QUARTERLY: Quarterly
        ANNUAL: Yearly / Annually
    """

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"

    @property
    def days_in_period(self) -> float:
        """Calendar days used to turn average balances into days of revenue/COGS."""
        return _DAYS_IN_PERIOD[self]

    @classmethod
    def from_label(cls, label: Optional[str]) -> "FrequencyEnum":
        """
        Resolve a period-type label coming from an external collaborator.

        Accepts enum values, English aliases and the Portuguese labels used by
        spreadsheet templates ('anos', 'trimestres', 'meses'). Unknown labels
        fall back to ANNUAL.

        Example:
            ```python
            FrequencyEnum.from_label("trimestres")  # FrequencyEnum.QUARTERLY
            FrequencyEnum.from_label(None)          # FrequencyEnum.ANNUAL
            ```
        """
        if isinstance(label, cls):
            return label
        if label is None:
            return cls.ANNUAL
        resolved = PERIOD_TYPE_LABELS.get(str(label).strip().lower())
        if resolved is None:
            logger.warning(f"Unknown period type label {label!r}; assuming annual periods")
            return cls.ANNUAL
        return resolved


_DAYS_IN_PERIOD: Dict[FrequencyEnum, float] = {
    FrequencyEnum.ANNUAL: 365.0,
    FrequencyEnum.QUARTERLY: 91.25,
    FrequencyEnum.MONTHLY: 30.4167,
}

PERIOD_TYPE_LABELS: Dict[str, FrequencyEnum] = {
    "annual": FrequencyEnum.ANNUAL,
    "yearly": FrequencyEnum.ANNUAL,
    "years": FrequencyEnum.ANNUAL,
    "anos": FrequencyEnum.ANNUAL,
    "quarterly": FrequencyEnum.QUARTERLY,
    "quarters": FrequencyEnum.QUARTERLY,
    "trimestres": FrequencyEnum.QUARTERLY,
    "monthly": FrequencyEnum.MONTHLY,
    "months": FrequencyEnum.MONTHLY,
    "meses": FrequencyEnum.MONTHLY,
}


class FieldTypeEnum(str, Enum):
    """Unit of a driver or override field."""

    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    DAYS = "days"


class FieldCategoryEnum(str, Enum):
    """
    Role of a field in the adaptive input methodology.

    Attributes:
        DRIVER_REQUIRED: Essential drivers for the basic calculation
        DRIVER_OPTIONAL: Drivers that refine the calculation when present
        OVERRIDE_PL: Direct income statement line overrides
        OVERRIDE_BS: Direct balance sheet overrides
        OVERRIDE_CF: Direct cash flow overrides
    """

    DRIVER_REQUIRED = "driver_required"
    DRIVER_OPTIONAL = "driver_optional"
    OVERRIDE_PL = "override_pl"
    OVERRIDE_BS = "override_bs"
    OVERRIDE_CF = "override_cf"

    @property
    def is_override(self) -> bool:
        return self in OVERRIDE_CATEGORIES


OVERRIDE_CATEGORIES = frozenset(
    {
        FieldCategoryEnum.OVERRIDE_PL,
        FieldCategoryEnum.OVERRIDE_BS,
        FieldCategoryEnum.OVERRIDE_CF,
    }
)


class StatementGroupEnum(str, Enum):
    """Financial statement a field belongs to."""

    PROFIT_AND_LOSS = "P&L"
    BALANCE_SHEET = "Balance Sheet"
    CASH_FLOW = "Cash Flow"


class LineItem(str, Enum):
    """
    Every line item whose computed value a caller may replace.

    Each member maps to exactly one override key in the field registry and
    one target attribute on the calculated period record. The mapping lives in
    explicit tables (see `adaptiva.fields.registry` and
    `adaptiva.engine.overrides`), never in string concatenation.
    """

    # Income statement
    COGS = "cogs"
    GROSS_PROFIT = "gross_profit"
    EBITDA = "ebitda"
    EBIT = "ebit"
    PBT = "pbt"
    INCOME_TAX = "income_tax"
    NET_PROFIT = "net_profit"

    # Balance sheet
    AR_ENDING = "ar_ending"
    INVENTORY_ENDING = "inventory_ending"
    AP_ENDING = "ap_ending"
    TOTAL_CURRENT_ASSETS = "total_current_assets"
    TOTAL_ASSETS = "total_assets"
    TOTAL_CURRENT_LIABILITIES = "total_current_liabilities"
    TOTAL_LIABILITIES = "total_liabilities"
    EQUITY_ENDING = "equity_ending"

    # Cash flow
    CLOSING_CASH = "closing_cash"
    OPERATING_CASH_FLOW = "operating_cash_flow"
    WORKING_CAPITAL_CHANGE = "working_capital_change"


class ValidationCodeEnum(str, Enum):
    """Class of an input validation failure."""

    MISSING_REQUIRED = "MISSING_REQUIRED"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    INVALID_NUMBER = "INVALID_NUMBER"


class SeverityEnum(str, Enum):
    """Severity of a post-derivation consistency issue."""

    CRITICAL_ERROR = "CRITICAL_ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


class ConsistencyCheckEnum(str, Enum):
    """Machine-readable identifier of a consistency check."""

    WC_VALUE = "SSOT_WC_VALUE"
    WC_DAYS = "SSOT_WC_DAYS"
    BS_EQUATION = "SSOT_BS_EQUATION"
    CASH_RECONCILIATION = "SSOT_CASH_RECONCILIATION"
    CASH_CONTINUITY = "SSOT_CASH_CONTINUITY"

    # Override consistency
    PL_OVERRIDE_INCONSISTENT = "PL_OVERRIDE_INCONSISTENT"
    EXCESSIVE_OVERRIDES = "EXCESSIVE_OVERRIDES_WARNING"

    # Statement constraints
    GROSS_PROFIT_EQUATION = "GROSS_PROFIT_EQ_VIOLATION"
    EBITDA_EQUATION = "EBITDA_EQ_VIOLATION"
    EBIT_EQUATION = "EBIT_EQ_VIOLATION"
    PBT_EQUATION = "PBT_EQ_VIOLATION"
    NET_PROFIT_EQUATION = "NET_PROFIT_EQ_VIOLATION"
    COGS_HIGH = "COGS_HIGH"
    BS_IMBALANCE_MATERIAL = "BS_IMBALANCE_MATERIAL"
    CURRENT_ASSETS_EXCEED_TOTAL = "CA_GT_TA"
    CURRENT_LIABILITIES_EXCEED_TOTAL = "CL_GT_TL"
    NET_CHANGE_IN_CASH = "CF_NET_CHANGE_CALC_ERROR"
    CASH_OVERRIDE_IMPACT = "CASH_OVERRIDE_RECONCILIATION_IMPACT"
    CASH_OVERRIDE_MATCH = "CASH_OVERRIDE_APPLIED_MATCH"
    EQUITY_BRIDGE = "EQUITY_BRIDGE_WARN"

    # Business rules
    LOW_INVENTORY_DAYS = "LOW_INVENTORY_DAYS"
    HIGH_AP_DAYS = "HIGH_AP_DAYS"
    NEGATIVE_CASH_CYCLE = "NEGATIVE_CASH_CYCLE"
    HIGH_CASH_CYCLE = "HIGH_CASH_CYCLE"
    MARGIN_VOLATILITY = "MARGIN_VOLATILITY"
    BS_DIFFERENCE_SHARE = "BS_DIFFERENCE_SHARE"
    HIGH_TAX_BURDEN = "HIGH_TAX_BURDEN"
    CASH_FLOW_DIVERGENCE = "OCF_VS_NET_PROFIT_DIVERGENCE"


class CalculationTypeEnum(str, Enum):
    """Request types accepted by the calculation transport."""

    FINANCIAL_DATA = "FINANCIAL_DATA"
    NPV = "NPV"
    IRR = "IRR"
    PAYBACK = "PAYBACK"
    BREAKEVEN = "BREAKEVEN"
    PROJECTION = "PROJECTION"
    BATCH = "BATCH"
    CLEANUP = "CLEANUP"
