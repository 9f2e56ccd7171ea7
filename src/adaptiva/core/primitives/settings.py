# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pydantic import Field

from .enums import FrequencyEnum
from .model import Model
from .types import PositiveFloat, PositiveInt


class ToleranceSettings(Model):
    """
    Floating-point tolerances shared by the derivation engine and the
    consistency validator.
    """

    currency: PositiveFloat = Field(
        default=0.015,
        description="Maximum absolute difference, in currency units, for monetary identities.",
    )
    days: PositiveFloat = Field(
        default=0.1,
        description="Maximum absolute difference, in days, for the cash conversion cycle identity.",
    )


class RuleThresholds(Model):
    """
    Thresholds for the statement-constraint, override and business-rule
    checks run after derivation. Percent values use the 0-100 scale.
    """

    relative_tolerance: PositiveFloat = Field(
        default=0.005,
        description="Share of the reference amount tolerated in statement equations (0.5%).",
    )
    material_imbalance: PositiveFloat = Field(
        default=100.0,
        description="Minimum balance sheet difference, in currency units, reported as material.",
    )
    max_overrides: PositiveInt = Field(
        default=7,
        description="Overrides in one period above which a warning is raised.",
    )
    min_inventory_days: PositiveFloat = Field(
        default=5.0,
        description="Inventory days below this (and not zero) look implausible outside services.",
    )
    max_ap_days: PositiveFloat = Field(
        default=180.0,
        description="AP days above this signal supplier sustainability risk.",
    )
    negative_cash_cycle_days: float = Field(
        default=-30.0,
        description="Cash conversion cycle below this is reported as supplier-funded.",
    )
    max_cash_cycle_days: PositiveFloat = Field(
        default=120.0,
        description="Cash conversion cycle above this signals a heavy working-capital need.",
    )
    gross_margin_swing: PositiveFloat = Field(
        default=15.0,
        description="Period-on-period gross margin change, in percentage points, treated as critical.",
    )
    net_margin_swing: PositiveFloat = Field(
        default=10.0,
        description="Period-on-period net margin change, in percentage points, worth a warning.",
    )
    bs_difference_warning_pct: PositiveFloat = Field(
        default=1.0,
        description="Balance sheet difference as percent of total assets worth a warning.",
    )
    bs_difference_critical_pct: PositiveFloat = Field(
        default=5.0,
        description="Balance sheet difference as percent of total assets treated as critical.",
    )
    max_effective_tax_rate: PositiveFloat = Field(
        default=45.0,
        description="Income tax as percent of profit before tax above which a warning is raised.",
    )
    cash_flow_divergence: PositiveFloat = Field(
        default=0.2,
        description=(
            "Share of net profit by which operating cash flow may differ from "
            "net profit plus D&A before a warning is raised."
        ),
    )


class EngineSettings(Model):
    """
    Configuration for a derivation run.

    Usage Examples:
        # Annual periods, default tolerances
        settings = EngineSettings()

        # Quarterly periods with a looser currency tolerance
        settings = EngineSettings(
            period_type=FrequencyEnum.QUARTERLY,
            tolerances=ToleranceSettings(currency=0.5),
        )
    """

    period_type: FrequencyEnum = Field(
        default=FrequencyEnum.ANNUAL,
        description="Length of each modelled period; drives days-in-period for working-capital days.",
    )
    days_decimals: PositiveInt = Field(
        default=1,
        description="Decimal places kept on derived AR, inventory and AP days.",
    )
    tolerances: ToleranceSettings = Field(default_factory=ToleranceSettings)
    thresholds: RuleThresholds = Field(default_factory=RuleThresholds)

    @property
    def days_in_period(self) -> float:
        return self.period_type.days_in_period
