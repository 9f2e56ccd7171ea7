# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
End-to-end tests: validate, derive, check consistency and report.
"""

from __future__ import annotations

import pytest

from adaptiva.core import FinancialCalculations
from adaptiva.engine import derive_all, derive_all_validated
from adaptiva.fields import validate_all_fields
from adaptiva.reporting import (
    BalanceSheetReport,
    IncomeStatementReport,
    validate_series_consistency,
)
from adaptiva.transport import handle_financial_request


def test_reference_company_pipeline(four_period_input):
    assert validate_all_fields(four_period_input) == []
    results = derive_all_validated(four_period_input, period_type="anos")

    first = results[0]
    assert (first.cogs, first.gross_profit, first.ebitda, first.ebit) == pytest.approx(
        (550_000, 450_000, 150_000, 130_000)
    )
    assert validate_series_consistency(results, labels=["Y1", "Y2", "Y3", "Y4"]) == []

    income = IncomeStatementReport(results).generate()
    assert income.loc["Net Revenue"].tolist() == pytest.approx(
        [1_000_000, 1_100_000, 1_210_000, 1_331_000]
    )
    balance = BalanceSheetReport(results).generate()
    assert (balance.loc["Balance Sheet Difference"].abs() < 1e-6).all()


def test_invariants_hold_for_every_period(four_period_results):
    for period in four_period_results:
        assert abs(
            period.estimated_total_assets
            - (period.estimated_total_liabilities + period.equity + period.balance_sheet_difference)
        ) < 0.02
        assert abs(period.wc_days - (period.ar_days + period.inventory_days - period.ap_days)) < 0.1
        assert period.working_capital_value == pytest.approx(
            period.accounts_receivable_value + period.inventory_value - period.accounts_payable_value
        )
    for prior, current in zip(four_period_results, four_period_results[1:]):
        assert current.opening_cash == prior.closing_cash


def test_overrides_keep_the_series_consistent(four_period_input):
    four_period_input[1]["override_net_profit"] = 50_000
    four_period_input[2]["override_working_capital_change"] = -5_000
    four_period_input[3]["override_equity_ending"] = 900_000
    results = derive_all(four_period_input)

    assert results[1].net_profit == 50_000
    assert results[2].working_capital_change == -5_000
    assert results[3].equity == 900_000
    assert validate_series_consistency(results) == []


def test_statement_cash_flows_feed_the_calculators(four_period_results):
    flows = [p.net_cash_flow_before_financing for p in four_period_results]
    npv = FinancialCalculations.calculate_npv(flows, 0.0, 100_000)
    assert npv.npv == pytest.approx(sum(flows) - 100_000)

    irr = FinancialCalculations.calculate_irr([-250_000] + flows)
    assert irr.is_valid
    check = FinancialCalculations.calculate_npv(flows, irr.irr, 250_000)
    assert abs(check.npv) < 1e-2


def test_transport_output_matches_engine(four_period_input):
    response = handle_financial_request({"periodsInputDataRaw": four_period_input})
    engine = derive_all(four_period_input)
    assert response["data"] == [p.to_wire() for p in engine]
