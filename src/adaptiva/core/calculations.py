# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Investment-analysis calculation functions.

Contains static methods for stand-alone investment metrics (NPV, IRR,
payback, break-even, cash flow projection and sensitivity). These functions
are pure (math-only) and independent of the period engine; the transport
layer delegates to them so there is a single source of truth for each
calculation.

Results are returned at full precision; presentation rounding belongs to
the consumer.
"""

from __future__ import annotations

import logging
import math
from decimal import Decimal
from numbers import Real
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import numpy as np
import pyxirr
from pydantic import Field

from .exceptions import CalculationError
from .primitives import Model

logger = logging.getLogger(__name__)


class NPVResult(Model):
    npv: float
    profitability_index: Optional[float] = None
    present_values: List[float] = Field(default_factory=list)


class IRRResult(Model):
    """IRR as a decimal (0.15 for 15%); `irr` is None when `is_valid` is False."""

    irr: Optional[float] = None
    is_valid: bool
    error: Optional[str] = None


class PaybackResult(Model):
    payback_period: Optional[float] = None
    is_within_project_life: bool
    cumulative_cash_flows: List[float] = Field(default_factory=list)


class BreakEvenResult(Model):
    break_even_units: float
    break_even_revenue: float
    contribution_margin: float
    contribution_margin_ratio: float  # percent of price

    def margin_of_safety(self, target_revenue: float) -> float:
        """Share of `target_revenue` above break-even, in percent."""
        if target_revenue <= 0:
            raise CalculationError("Target revenue must be a positive number")
        return (target_revenue - self.break_even_revenue) / target_revenue * 100.0


class ProjectionResult(Model):
    projected_cash_flows: List[float]
    present_values: List[float]
    total_pv: float
    terminal_value: Optional[float] = None


class SensitivityPoint(Model):
    value: float
    result: float
    percentage_change: Optional[float] = None
    impact: Optional[float] = None


def _number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (Real, Decimal)):
        raise CalculationError(f"{name} must be a finite number, got {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise CalculationError(f"{name} must be a finite number, got {value!r}")
    return number


def _cash_flows(values: Any, minimum_length: int = 1) -> np.ndarray:
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        raise CalculationError("Cash flows must be a list of numbers")
    if len(values) < minimum_length:
        if minimum_length == 1:
            raise CalculationError("Cash flows must be a non-empty array")
        raise CalculationError(
            f"Cash flows must be an array with at least {minimum_length} periods"
        )
    return np.array([_number(v, "Cash flow") for v in values], dtype=float)


class FinancialCalculations:
    """
    Pure mathematical functions for investment analysis.

    Cash flow convention: negative values are investments/outflows,
    positive values are returns/inflows.
    """

    @staticmethod
    def calculate_npv(
        cash_flows: Sequence[float],
        discount_rate: float,
        initial_investment: float = 0.0,
    ) -> NPVResult:
        """
        Calculate Net Present Value.

        NPV = sum(cf_t / (1 + rate)^t for t = 1..n) - initial_investment

        Args:
            cash_flows: Flows at the end of periods 1..n
            discount_rate: Per-period rate as decimal (0.10 for 10%)
            initial_investment: Outlay at t=0, as a positive number

        Returns:
            NPVResult; `profitability_index` (PV of inflows / investment) is
            None when there is no investment

        Raises:
            CalculationError: Empty cash flows, rate <= -100% or negative investment

        Example:
            ```python
            result = FinancialCalculations.calculate_npv([300, 400, 500], 0.10, 1000)
            print(f"NPV: ${result.npv:,.0f}")  # NPV: $-21
            ```
        """
        flows = _cash_flows(cash_flows)
        rate = _number(discount_rate, "Discount rate")
        if rate <= -1:
            raise CalculationError("Discount rate must be a valid number greater than -100%")
        investment = _number(initial_investment, "Initial investment")
        if investment < 0:
            raise CalculationError("Initial investment must be a non-negative number")

        periods = np.arange(1, len(flows) + 1)
        present_values = flows / np.power(1.0 + rate, periods)
        total_pv = float(present_values.sum())

        return NPVResult(
            npv=total_pv - investment,
            profitability_index=total_pv / investment if investment > 0 else None,
            present_values=present_values.tolist(),
        )

    @staticmethod
    def calculate_irr(cash_flows: Sequence[float], guess: float = 0.1) -> IRRResult:
        """
        Calculate Internal Rate of Return using PyXIRR.

        Args:
            cash_flows: Flows for t = 0..n, typically starting with the
                negative investment
            guess: Starting point for the root-find

        Returns:
            IRRResult; `is_valid` is False when the flows have no sign change
            or the root-find does not converge

        Raises:
            CalculationError: Fewer than two cash flows

        Example:
            ```python
            result = FinancialCalculations.calculate_irr([-1000, 300, 400, 500])
            print(f"IRR: {result.irr:.2%}")  # IRR: 8.90%
            ```
        """
        flows = _cash_flows(cash_flows, minimum_length=2)
        guess = _number(guess, "Guess")

        # Need both investments and returns
        if not ((flows < 0).any() and (flows > 0).any()):
            return IRRResult(is_valid=False, error="Cash flows must change sign at least once")

        try:
            result = pyxirr.irr(flows.tolist(), guess=guess)
        except Exception as e:
            logger.debug(f"IRR root-find failed: {e}")
            return IRRResult(is_valid=False, error="IRR calculation did not converge")

        if result is None or not math.isfinite(result):
            return IRRResult(is_valid=False, error="IRR calculation did not converge")
        return IRRResult(irr=float(result), is_valid=True)

    @staticmethod
    def calculate_payback_period(
        cash_flows: Sequence[float], initial_investment: float
    ) -> PaybackResult:
        """
        Calculate the payback period with fractional interpolation.

        Payback is the point where the cumulative cash flow (starting at
        -initial_investment) first reaches zero, interpolated linearly within
        the period in which it crosses.

        Raises:
            CalculationError: Non-positive investment or invalid cash flows

        Example:
            ```python
            result = FinancialCalculations.calculate_payback_period([400, 400, 400], 1000)
            result.payback_period  # 2.5
            ```
        """
        flows = _cash_flows(cash_flows, minimum_length=0)
        investment = _number(initial_investment, "Initial investment")
        if investment <= 0:
            raise CalculationError("Initial investment must be a positive number")

        cumulative = np.cumsum(flows) - investment
        crossed = np.flatnonzero(cumulative >= 0)

        payback_period: Optional[float] = None
        if crossed.size:
            i = int(crossed[0])
            previous = cumulative[i - 1] if i > 0 else -investment
            payback_period = i + float(-previous / flows[i])

        return PaybackResult(
            payback_period=payback_period,
            is_within_project_life=(
                payback_period is not None and payback_period <= len(flows)
            ),
            cumulative_cash_flows=cumulative.tolist(),
        )

    @staticmethod
    def calculate_break_even(
        fixed_costs: float, variable_cost_per_unit: float, price_per_unit: float
    ) -> BreakEvenResult:
        """
        Calculate break-even volume and revenue.

        units = fixed_costs / (price - variable_cost)

        Raises:
            CalculationError: Negative costs, non-positive price or a
                non-positive contribution margin

        Example:
            ```python
            result = FinancialCalculations.calculate_break_even(500_000, 50, 100)
            result.break_even_units  # 10000.0
            ```
        """
        fixed = _number(fixed_costs, "Fixed costs")
        variable = _number(variable_cost_per_unit, "Variable cost per unit")
        price = _number(price_per_unit, "Price per unit")
        if fixed < 0:
            raise CalculationError("Fixed costs must be a non-negative number")
        if variable < 0:
            raise CalculationError("Variable cost per unit must be a non-negative number")
        if price <= 0:
            raise CalculationError("Price per unit must be a positive number")

        contribution_margin = price - variable
        if contribution_margin <= 0:
            raise CalculationError(
                f"Negative or zero contribution margin: price {price:g} <= variable cost {variable:g}"
            )

        units = fixed / contribution_margin
        return BreakEvenResult(
            break_even_units=units,
            break_even_revenue=units * price,
            contribution_margin=contribution_margin,
            contribution_margin_ratio=contribution_margin / price * 100.0,
        )

    @staticmethod
    def project_cash_flows(
        base_cash_flow: float,
        growth_rate: float,
        periods: int,
        discount_rate: float = 0.0,
    ) -> ProjectionResult:
        """
        Project a growing cash flow and discount it.

        Flow i (0-based) is base * (1 + g)^i, discounted by (1 + d)^i. The
        terminal value uses the Gordon growth model on the last projected
        flow and is only reported when the discount rate exceeds growth.

        Raises:
            CalculationError: Non-positive base, non-integer or non-positive
                periods, or discount rate <= -100%
        """
        base = _number(base_cash_flow, "Base cash flow")
        growth = _number(growth_rate, "Growth rate")
        discount = _number(discount_rate, "Discount rate")
        if base <= 0:
            raise CalculationError("Base cash flow must be a positive number")
        if isinstance(periods, bool) or not isinstance(periods, int) or periods <= 0:
            raise CalculationError("Periods must be a positive integer")
        if discount <= -1:
            raise CalculationError("Discount rate must be a valid number greater than -100%")

        exponents = np.arange(periods)
        projected = base * np.power(1.0 + growth, exponents)
        present_values = projected / np.power(1.0 + discount, exponents)

        terminal_value = None
        if discount > growth:
            terminal_value = float(projected[-1] * (1.0 + growth) / (discount - growth))

        return ProjectionResult(
            projected_cash_flows=projected.tolist(),
            present_values=present_values.tolist(),
            total_pv=float(present_values.sum()),
            terminal_value=terminal_value,
        )

    @staticmethod
    def sensitivity_analysis(
        base_case: Mapping[str, float],
        variables: Mapping[str, Sequence[float]],
        calculation: Callable[[Dict[str, float]], float],
    ) -> Dict[str, List[SensitivityPoint]]:
        """
        Evaluate `calculation` while varying one input at a time.

        Args:
            base_case: Baseline inputs passed to `calculation`
            variables: Input name -> values to try in place of the baseline
            calculation: Function of an input mapping returning a number

        Returns:
            Input name -> one SensitivityPoint per tried value.
            `percentage_change` is the input's change versus baseline and
            `impact` the result's change, both in percent; either is None
            when its baseline is 0.

        Example:
            ```python
            npv = lambda s: FinancialCalculations.calculate_npv(
                [s["cash_flow"]] * 5, s["rate"], 1000
            ).npv
            table = FinancialCalculations.sensitivity_analysis(
                {"cash_flow": 300, "rate": 0.1}, {"rate": [0.05, 0.15]}, npv
            )
            ```
        """
        base_result = _number(calculation(dict(base_case)), "Base case result")

        results: Dict[str, List[SensitivityPoint]] = {}
        for variable, values in variables.items():
            if variable not in base_case:
                raise CalculationError(f"Variable '{variable}' is not part of the base case")
            base_value = _number(base_case[variable], variable)
            points = []
            for raw_value in values:
                value = _number(raw_value, variable)
                scenario = {**base_case, variable: raw_value}
                result = _number(calculation(scenario), "Scenario result")
                points.append(
                    SensitivityPoint(
                        value=value,
                        result=result,
                        percentage_change=(
                            (value - base_value) / base_value * 100.0 if base_value != 0 else None
                        ),
                        impact=(
                            (result - base_result) / base_result * 100.0
                            if base_result != 0
                            else None
                        ),
                    )
                )
            results[variable] = points
        return results
