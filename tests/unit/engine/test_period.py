# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for single-period derivation.
"""

from __future__ import annotations

import copy
from decimal import Decimal

import pytest

from adaptiva.core.exceptions import DerivationError
from adaptiva.core.primitives import EngineSettings, FrequencyEnum, LineItem
from adaptiva.engine import derive_period, parse_inputs


@pytest.fixture
def first_period(make_period_input):
    return derive_period(make_period_input(), None, 0)


class TestIncomeStatement:
    def test_reference_figures(self):
        period = derive_period(
            {
                "revenue": 1_000_000,
                "gross_margin_percentage": 45,
                "operating_expenses": 300_000,
                "depreciation_and_amortisation": 20_000,
            },
            None,
            0,
        )
        assert period.cogs == pytest.approx(550_000)
        assert period.gross_profit == pytest.approx(450_000)
        assert period.ebitda == pytest.approx(150_000)
        assert period.ebit == pytest.approx(130_000)

    def test_full_waterfall(self, first_period):
        assert first_period.net_financial_result == -10_000
        assert first_period.pbt == pytest.approx(120_000)
        assert first_period.income_tax_rate_applied == pytest.approx(0.25)
        assert first_period.income_tax == pytest.approx(30_000)
        assert first_period.net_profit == pytest.approx(90_000)
        assert first_period.retained_profit == pytest.approx(80_000)

    def test_margins(self, first_period):
        assert first_period.gm_pct == pytest.approx(45.0)
        assert first_period.ebitda_pct == pytest.approx(15.0)
        assert first_period.op_profit_pct == pytest.approx(13.0)
        assert first_period.net_profit_pct == pytest.approx(9.0)

    def test_extraordinary_items_flow_into_pbt(self, make_period_input):
        period = derive_period(make_period_input(extraordinary_items=5_000), None, 0)
        assert period.pbt == pytest.approx(125_000)

    def test_no_tax_on_losses(self, make_period_input):
        period = derive_period(make_period_input(operating_expenses=600_000), None, 0)
        assert period.pbt < 0
        assert period.income_tax == 0.0
        assert period.net_profit == period.pbt

    def test_no_tax_when_rate_blank(self, make_period_input):
        period = derive_period(make_period_input(income_tax_rate_percentage=None), None, 0)
        assert period.income_tax == 0.0
        assert period.net_profit == pytest.approx(period.pbt)

    def test_zero_revenue_has_no_nan(self, make_period_input):
        period = derive_period(make_period_input(revenue=0), None, 0)
        assert period.gm_pct == 0.0
        assert period.net_profit_pct == 0.0
        assert period.ar_days == 0.0
        assert period.inventory_days == 0.0
        assert period.ar_per_100_revenue == 0.0


class TestWorkingCapital:
    def test_days_use_revenue_for_ar_and_cogs_for_inventory_and_ap(self, first_period):
        assert first_period.ar_days == 43.8  # 120k / 1m * 365
        assert first_period.inventory_days == 53.1  # 80k / 550k * 365
        assert first_period.ap_days == 39.8  # 60k / 550k * 365
        assert first_period.wc_days == 57.1

    def test_quarterly_days(self, make_period_input):
        settings = EngineSettings(period_type=FrequencyEnum.QUARTERLY)
        period = derive_period(make_period_input(), None, 0, settings)
        assert period.ar_days == round(120_000 / 1_000_000 * 91.25, 1)

    def test_value_and_first_period_change(self, first_period):
        assert first_period.working_capital_value == pytest.approx(140_000)
        assert first_period.working_capital_change == 0.0

    def test_change_versus_prior(self, first_period, make_later_period_input):
        second = derive_period(make_later_period_input(1), first_period, 1)
        assert second.working_capital_value == pytest.approx(151_000)
        assert second.working_capital_change == pytest.approx(11_000)

    def test_ending_overrides_replace_balances_not_days(self, make_period_input):
        period = derive_period(make_period_input(override_ar_ending=200_000), None, 0)
        assert period.accounts_receivable_value == 200_000
        assert period.ar_days == 43.8
        assert period.working_capital_value == pytest.approx(220_000)
        assert period.estimated_current_assets == pytest.approx(period.closing_cash + 280_000)

    def test_ratios_per_100(self, first_period):
        assert first_period.ar_per_100_revenue == pytest.approx(12.0)
        assert first_period.ap_per_100_revenue == pytest.approx(60_000 / 550_000 * 100)
        assert first_period.wc_per_100_revenue == pytest.approx(14.0)


class TestCashFlow:
    def test_first_period(self, first_period):
        assert first_period.operating_cash_flow == pytest.approx(110_000)
        assert first_period.cash_from_ops_after_wc == pytest.approx(110_000)
        assert first_period.net_cash_flow_before_financing == pytest.approx(80_000)
        assert first_period.funding_gap_or_surplus == pytest.approx(-80_000)
        assert first_period.change_in_debt == 0.0
        assert first_period.cash_flow_from_financing == pytest.approx(-10_000)
        assert first_period.net_change_in_cash == pytest.approx(70_000)
        assert first_period.opening_cash == 50_000
        assert first_period.closing_cash == pytest.approx(120_000)
        assert first_period.calculated_closing_cash == first_period.closing_cash

    def test_second_period_threads_opening_cash(self, first_period, make_later_period_input):
        second = derive_period(make_later_period_input(1), first_period, 1)
        assert second.opening_cash == first_period.closing_cash
        assert second.change_in_debt == pytest.approx(25_000)
        assert second.net_profit == pytest.approx(123_750)
        assert second.net_change_in_cash == pytest.approx(117_750)
        assert second.closing_cash == pytest.approx(237_750)

    def test_opening_cash_input_ignored_after_first_period(self, first_period, make_later_period_input):
        second = derive_period(make_later_period_input(1, opening_cash=1_000_000), first_period, 1)
        assert second.opening_cash == first_period.closing_cash

    def test_closing_cash_override_keeps_calculated_value(self, make_period_input):
        period = derive_period(make_period_input(override_closing_cash=150_000), None, 0)
        assert period.closing_cash == 150_000
        assert period.calculated_closing_cash == pytest.approx(120_000)


class TestBalanceSheet:
    def test_balanced_reference_company(self, first_period):
        assert first_period.estimated_current_assets == pytest.approx(320_000)
        assert first_period.estimated_total_assets == pytest.approx(720_000)
        assert first_period.estimated_current_liabilities == pytest.approx(60_000)
        assert first_period.estimated_non_current_liabilities == pytest.approx(200_000)
        assert first_period.estimated_total_liabilities == pytest.approx(260_000)
        assert first_period.equity == pytest.approx(460_000)
        assert first_period.balance_sheet_difference == pytest.approx(0.0)

    def test_difference_is_reported_not_forced(self, make_period_input):
        period = derive_period(make_period_input(initial_equity=300_000), None, 0)
        assert period.balance_sheet_difference == pytest.approx(80_000)

    def test_equity_carries_forward(self, first_period, make_later_period_input):
        second = derive_period(make_later_period_input(1), first_period, 1)
        assert second.equity == pytest.approx(first_period.equity + second.retained_profit)

    def test_subtotal_overrides(self, make_period_input):
        period = derive_period(
            make_period_input(override_total_assets=1_000_000, override_total_liabilities=300_000),
            None,
            0,
        )
        assert period.estimated_total_assets == 1_000_000
        assert period.estimated_total_liabilities == 300_000
        assert period.balance_sheet_difference == pytest.approx(1_000_000 - 300_000 - 460_000)


class TestOverridePrecedence:
    def test_net_profit_override_wins(self, make_period_input):
        period = derive_period(make_period_input(override_net_profit=42.0), None, 0)
        assert period.net_profit == 42.0
        assert period.retained_profit == pytest.approx(42.0 - 10_000)
        assert period.operating_cash_flow == pytest.approx(42.0 + 20_000)
        assert period.applied_overrides == (LineItem.NET_PROFIT,)

    def test_override_feeds_downstream_stages(self, make_period_input):
        period = derive_period(make_period_input(override_cogs=600_000), None, 0)
        assert period.cogs == 600_000
        assert period.gross_profit == pytest.approx(400_000)
        assert period.ebitda == pytest.approx(100_000)
        assert period.inventory_days == round(80_000 / 600_000 * 365, 1)

    def test_wire_alias_override(self, make_period_input):
        period = derive_period(make_period_input(override_grossProfit=500_000), None, 0)
        assert period.gross_profit == 500_000
        assert period.override_gross_profit == 500_000

    def test_applied_overrides_in_stage_order(self, make_period_input):
        period = derive_period(
            make_period_input(override_closing_cash=1.0, override_cogs=2.0, override_ebit=3.0),
            None,
            0,
        )
        assert period.applied_overrides == (LineItem.COGS, LineItem.EBIT, LineItem.CLOSING_CASH)

    def test_zero_override_is_applied(self, make_period_input):
        period = derive_period(make_period_input(override_income_tax=0), None, 0)
        assert period.income_tax == 0.0
        assert LineItem.INCOME_TAX in period.applied_overrides


class TestFailures:
    def test_non_numeric_value(self, make_period_input):
        with pytest.raises(DerivationError, match="Net Revenue") as excinfo:
            derive_period(make_period_input(revenue="lots"), None, 0)
        assert excinfo.value.field == "revenue"
        assert excinfo.value.period_index == 0

    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    def test_non_finite_value(self, make_period_input, value):
        with pytest.raises(DerivationError, match="finite"):
            derive_period(make_period_input(operating_expenses=value), None, 0)

    def test_prior_required_after_first_period(self, make_later_period_input):
        with pytest.raises(DerivationError, match="Prior period"):
            derive_period(make_later_period_input(1), None, 1)

    def test_negative_index(self, make_period_input):
        with pytest.raises(DerivationError):
            derive_period(make_period_input(), None, -1)

    def test_non_mapping_input(self):
        with pytest.raises(DerivationError, match="mapping"):
            derive_period([1, 2, 3], None, 0)


def test_input_is_not_mutated(make_period_input):
    raw = make_period_input(override_net_profit=1.0)
    snapshot = copy.deepcopy(raw)
    derive_period(raw, None, 0)
    assert raw == snapshot


def test_parse_inputs_drops_first_period_only_fields(make_period_input):
    parsed = parse_inputs(make_period_input(), 2)
    assert parsed["opening_cash"] is None
    assert parsed["initial_equity"] is None
    assert parsed["revenue"] == 1_000_000.0


def test_record_keeps_parsed_inputs(first_period):
    assert first_period.revenue == 1_000_000.0
    assert first_period.initial_equity == 380_000.0
    assert first_period.override_net_profit is None
    assert first_period.period_index == 0


def test_decimal_drivers_derive_like_floats(make_period_input):
    as_decimal = make_period_input(
        revenue=Decimal("1000000"),
        operating_expenses=Decimal("300000"),
        opening_cash=Decimal("50000"),
    )
    from_decimal = derive_period(as_decimal, None, 0)
    from_float = derive_period(make_period_input(), None, 0)
    assert from_decimal.net_profit == pytest.approx(from_float.net_profit)
    assert from_decimal.closing_cash == pytest.approx(120_000)
