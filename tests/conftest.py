# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Test utilities and fixtures for Adaptiva testing.

Provides period-input factories with realistic drivers so tests only spell
out the values they care about.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List

import pytest

from adaptiva.engine import derive_all


def base_period_input(**overrides: Any) -> Dict[str, Any]:
    """
    First-period drivers for a small trading company.

    With these values period 0 derives to:
        cogs 550,000 / gross profit 450,000 / EBITDA 150,000 / EBIT 130,000,
        PBT 120,000, tax 30,000, net profit 90,000, closing cash 120,000
        and a balanced balance sheet (difference 0).
    """
    period = {
        "revenue": 1_000_000,
        "gross_margin_percentage": 45,
        "operating_expenses": 300_000,
        "depreciation_and_amortisation": 20_000,
        "net_interest_expense_income": -10_000,
        "income_tax_rate_percentage": 25,
        "dividends_paid": 10_000,
        "capital_expenditures": 30_000,
        "opening_cash": 50_000,
        "accounts_receivable_value_avg": 120_000,
        "inventory_value_avg": 80_000,
        "accounts_payable_value_avg": 60_000,
        "net_fixed_assets": 400_000,
        "total_bank_loans": 200_000,
        "initial_equity": 380_000,
    }
    period.update(overrides)
    return period


def later_period_input(index: int, **overrides: Any) -> Dict[str, Any]:
    """Drivers for period `index` > 0: 10% revenue growth, rising loans, no opening balances."""
    period = base_period_input(
        revenue=1_000_000 * 1.1**index,
        accounts_receivable_value_avg=120_000 + 10_000 * index,
        inventory_value_avg=80_000 + 5_000 * index,
        accounts_payable_value_avg=60_000 + 4_000 * index,
        net_fixed_assets=400_000 + 10_000 * index,
        total_bank_loans=200_000 + 25_000 * index,
    )
    del period["opening_cash"]
    del period["initial_equity"]
    period.update(overrides)
    return period


def series_input(count: int) -> List[Dict[str, Any]]:
    return [base_period_input()] + [later_period_input(i) for i in range(1, count)]


@pytest.fixture
def make_period_input() -> Callable[..., Dict[str, Any]]:
    """Factory fixture returning first-period drivers with keyword overrides."""
    return base_period_input


@pytest.fixture
def make_later_period_input() -> Callable[..., Dict[str, Any]]:
    return later_period_input


@pytest.fixture
def four_period_input() -> List[Dict[str, Any]]:
    return series_input(4)


@pytest.fixture
def four_period_results(four_period_input):
    return derive_all(four_period_input)
