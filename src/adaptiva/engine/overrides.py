# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Override application.

All "use the caller's value instead of the computed one" decisions go
through `OverrideSet.apply`, keyed by `LineItem`. Override keys and target
fields are resolved through explicit tables, so a renamed field fails at
import time instead of silently ignoring an override.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from ..core.primitives import LineItem
from ..fields.registry import OVERRIDE_KEYS
from .records import CalculatedPeriodData

logger = logging.getLogger(__name__)

# LineItem -> CalculatedPeriodData attribute it replaces
OVERRIDE_TARGETS: Dict[LineItem, str] = {
    LineItem.COGS: "cogs",
    LineItem.GROSS_PROFIT: "gross_profit",
    LineItem.EBITDA: "ebitda",
    LineItem.EBIT: "ebit",
    LineItem.PBT: "pbt",
    LineItem.INCOME_TAX: "income_tax",
    LineItem.NET_PROFIT: "net_profit",
    LineItem.AR_ENDING: "accounts_receivable_value",
    LineItem.INVENTORY_ENDING: "inventory_value",
    LineItem.AP_ENDING: "accounts_payable_value",
    LineItem.TOTAL_CURRENT_ASSETS: "estimated_current_assets",
    LineItem.TOTAL_ASSETS: "estimated_total_assets",
    LineItem.TOTAL_CURRENT_LIABILITIES: "estimated_current_liabilities",
    LineItem.TOTAL_LIABILITIES: "estimated_total_liabilities",
    LineItem.EQUITY_ENDING: "equity",
    LineItem.CLOSING_CASH: "closing_cash",
    LineItem.OPERATING_CASH_FLOW: "operating_cash_flow",
    LineItem.WORKING_CAPITAL_CHANGE: "working_capital_change",
}

_missing = [item.value for item in LineItem if item not in OVERRIDE_TARGETS]
_bad_targets = [
    target for target in OVERRIDE_TARGETS.values()
    if target not in CalculatedPeriodData.model_fields
]
if _missing or _bad_targets:
    raise RuntimeError(
        f"Override targets are inconsistent: unmapped {_missing}, unknown fields {_bad_targets}"
    )


class OverrideSet:
    """
    Override values supplied for one period.

    `apply` is called once per derivation stage with the computed value; it
    returns the override when one is present and records which line items
    were replaced. Instances are local to a single `derive_period` call.
    """

    def __init__(self, values: Optional[Mapping[LineItem, float]] = None):
        self._values: Dict[LineItem, float] = {
            item: value for item, value in (values or {}).items() if value is not None
        }
        self._applied: List[LineItem] = []

    @classmethod
    def from_inputs(cls, inputs: Mapping[str, Optional[float]]) -> "OverrideSet":
        """Build from parsed inputs keyed by registry key (`override_<line item>`)."""
        return cls({item: inputs.get(key) for item, key in OVERRIDE_KEYS.items()})

    def get(self, item: LineItem) -> Optional[float]:
        return self._values.get(item)

    def apply(self, item: LineItem, computed: float) -> float:
        """Return the override for `item` if set, else the computed value."""
        override = self._values.get(item)
        if override is None:
            return computed
        if item not in self._applied:
            self._applied.append(item)
        logger.debug(f"Override {item.value}: computed {computed:,.2f} replaced by {override:,.2f}")
        return override

    @property
    def applied(self) -> tuple:
        """Line items whose computed value was replaced, in stage order."""
        return tuple(self._applied)

    def __len__(self) -> int:
        return len(self._values)
