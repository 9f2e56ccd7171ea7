# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for statement constraints, override consistency and business rules.
"""

from __future__ import annotations

import pytest

from adaptiva.core.primitives import (
    ConsistencyCheckEnum,
    EngineSettings,
    LineItem,
    RuleThresholds,
    SeverityEnum,
)
from adaptiva.engine import derive_all
from adaptiva.fields import get_override_field_keys
from adaptiva.reporting import (
    active_overrides,
    summarize_issues,
    validate_business_rules,
    validate_financial_statements,
    validate_override_consistency,
    validate_series_consistency,
    validate_statement_constraints,
)


def _types(issues):
    return [issue.type for issue in issues]


def test_healthy_series_raises_nothing(four_period_results):
    assert validate_financial_statements(four_period_results) == []


def test_contradictory_pl_overrides_are_reported(four_period_input):
    four_period_input[1].update(override_cogs=2_000_000, override_gross_profit=900_000)
    results = derive_all(four_period_input)

    issues = validate_financial_statements(results)
    second_period = [i for i in issues if i.period_label == "Period 2"]
    types = _types(second_period)
    assert ConsistencyCheckEnum.PL_OVERRIDE_INCONSISTENT in types
    assert ConsistencyCheckEnum.COGS_HIGH in types
    assert ConsistencyCheckEnum.GROSS_PROFIT_EQUATION in types

    # The accounting identities alone do not catch it
    assert validate_series_consistency(results) == []


class TestOverrideConsistency:
    def test_raw_input_with_wire_aliases(self):
        consistent = {"revenue": 1000, "override_cogs": 600, "override_grossProfit": 400}
        assert validate_override_consistency(consistent, "Year 1") == []

        contradictory = dict(consistent, override_grossProfit=500)
        issues = validate_override_consistency(contradictory, "Year 1")
        assert _types(issues) == [ConsistencyCheckEnum.PL_OVERRIDE_INCONSISTENT]
        assert issues[0].severity == SeverityEnum.CRITICAL_ERROR
        assert issues[0].expected == pytest.approx(400)
        assert issues[0].actual == pytest.approx(500)

    def test_single_pl_override_is_not_checked(self):
        assert validate_override_consistency({"revenue": 1000, "override_cogs": 5000}, "Y1") == []

    def test_blank_and_non_numeric_overrides_are_ignored(self):
        period = {"revenue": 1000, "override_cogs": "", "override_grossProfit": "n/a"}
        assert active_overrides(period) == {}

    def test_excessive_overrides_warn(self):
        period = {key: 1.0 for key in get_override_field_keys()[:8]}
        issues = validate_override_consistency(period, "Y1")
        excessive = [i for i in issues if i.type == ConsistencyCheckEnum.EXCESSIVE_OVERRIDES]
        assert len(excessive) == 1
        assert excessive[0].severity == SeverityEnum.WARNING
        assert excessive[0].actual == 8

    def test_override_limit_is_configurable(self):
        settings = EngineSettings(thresholds=RuleThresholds(max_overrides=0))
        issues = validate_override_consistency({"override_ebit": 5}, "Y1", settings)
        assert _types(issues) == [ConsistencyCheckEnum.EXCESSIVE_OVERRIDES]

    def test_reads_overrides_from_derived_records(self, make_period_input):
        results = derive_all([make_period_input(override_ebit=100_000)])
        assert active_overrides(results[0]) == {LineItem.EBIT: 100_000}


class TestStatementConstraints:
    def test_overridden_stage_breaks_only_its_own_equation(self, make_period_input):
        results = derive_all([make_period_input(override_ebitda=200_000)])
        issues = validate_statement_constraints(results[0], "Year 1")
        assert _types(issues) == [ConsistencyCheckEnum.EBITDA_EQUATION]
        assert issues[0].expected == pytest.approx(150_000)
        assert issues[0].actual == pytest.approx(200_000)

    def test_cogs_above_revenue_warns(self, make_period_input):
        results = derive_all([make_period_input(override_cogs=1_200_000)])
        issues = validate_statement_constraints(results[0], "Year 1")
        assert _types(issues) == [ConsistencyCheckEnum.COGS_HIGH]
        assert issues[0].severity == SeverityEnum.WARNING

    def test_current_assets_above_total_assets(self, make_period_input):
        results = derive_all([make_period_input(override_total_assets=100_000)])
        types = _types(validate_statement_constraints(results[0], "Year 1"))
        assert ConsistencyCheckEnum.CURRENT_ASSETS_EXCEED_TOTAL in types
        assert ConsistencyCheckEnum.BS_IMBALANCE_MATERIAL in types

    def test_current_liabilities_above_total_liabilities(self, make_period_input):
        results = derive_all([make_period_input(override_total_liabilities=10_000)])
        types = _types(validate_statement_constraints(results[0], "Year 1"))
        assert ConsistencyCheckEnum.CURRENT_LIABILITIES_EXCEED_TOTAL in types

    def test_zero_totals_are_not_compared(self, four_period_results):
        period = four_period_results[0].model_copy(
            update={"estimated_total_assets": 0.0, "estimated_total_liabilities": 0.0}
        )
        types = _types(validate_statement_constraints(period, "Year 1"))
        assert ConsistencyCheckEnum.CURRENT_ASSETS_EXCEED_TOTAL not in types
        assert ConsistencyCheckEnum.CURRENT_LIABILITIES_EXCEED_TOTAL not in types

    def test_net_change_in_cash_must_add_up(self, four_period_results):
        period = four_period_results[0]
        broken = period.model_copy(update={"net_change_in_cash": period.net_change_in_cash + 5_000})
        issues = validate_statement_constraints(broken, "Year 1")
        assert _types(issues) == [ConsistencyCheckEnum.NET_CHANGE_IN_CASH]
        assert issues[0].severity == SeverityEnum.CRITICAL_ERROR

    def test_closing_cash_override_impact_warns(self, make_period_input):
        results = derive_all([make_period_input(override_closing_cash=200_000)])
        issues = validate_statement_constraints(results[0], "Year 1")
        impact = [i for i in issues if i.type == ConsistencyCheckEnum.CASH_OVERRIDE_IMPACT]
        assert len(impact) == 1
        assert impact[0].severity == SeverityEnum.WARNING
        assert impact[0].expected == pytest.approx(120_000)
        assert impact[0].actual == pytest.approx(200_000)

    def test_closing_cash_override_close_to_calculation_is_info(self, make_period_input):
        results = derive_all([make_period_input(override_closing_cash=120_000.5)])
        issues = validate_statement_constraints(results[0], "Year 1")
        assert _types(issues) == [ConsistencyCheckEnum.CASH_OVERRIDE_MATCH]
        assert issues[0].severity == SeverityEnum.INFO

    def test_equity_bridge(self, four_period_results):
        previous, current = four_period_results[0], four_period_results[1]
        assert validate_statement_constraints(current, "Year 2", previous) == []

        drifted = current.model_copy(update={"equity": current.equity + 50_000})
        issues = validate_statement_constraints(drifted, "Year 2", previous)
        bridge = [i for i in issues if i.type == ConsistencyCheckEnum.EQUITY_BRIDGE]
        assert len(bridge) == 1
        assert bridge[0].severity == SeverityEnum.WARNING
        assert bridge[0].expected == pytest.approx(current.equity)

    def test_mapping_input_with_missing_values(self):
        assert validate_statement_constraints({}, "Empty") == []


class TestBusinessRules:
    @pytest.fixture
    def first(self, four_period_results):
        return four_period_results[0]

    @pytest.mark.parametrize(
        "update, check, severity",
        [
            ({"inventory_days": 3.0}, ConsistencyCheckEnum.LOW_INVENTORY_DAYS, SeverityEnum.WARNING),
            ({"ap_days": 200.0}, ConsistencyCheckEnum.HIGH_AP_DAYS, SeverityEnum.WARNING),
            ({"wc_days": -45.0}, ConsistencyCheckEnum.NEGATIVE_CASH_CYCLE, SeverityEnum.INFO),
            ({"wc_days": 150.0}, ConsistencyCheckEnum.HIGH_CASH_CYCLE, SeverityEnum.WARNING),
            ({"income_tax": 60_000.0}, ConsistencyCheckEnum.HIGH_TAX_BURDEN, SeverityEnum.WARNING),
            (
                {"operating_cash_flow": 200_000.0},
                ConsistencyCheckEnum.CASH_FLOW_DIVERGENCE,
                SeverityEnum.WARNING,
            ),
        ],
    )
    def test_single_period_rules(self, first, update, check, severity):
        issues = validate_business_rules([first.model_copy(update=update)], ["Year 1"])
        assert _types(issues) == [check]
        assert issues[0].severity == severity
        assert issues[0].period_label == "Year 1"

    def test_zero_inventory_days_are_allowed(self, first):
        assert validate_business_rules([first.model_copy(update={"inventory_days": 0.0})]) == []

    def test_margin_swings(self, four_period_results):
        first, second = four_period_results[0], four_period_results[1]
        swung = second.model_copy(
            update={"gm_pct": first.gm_pct + 20, "net_profit_pct": first.net_profit_pct + 12}
        )
        issues = validate_business_rules([first, swung])
        assert _types(issues) == [ConsistencyCheckEnum.MARGIN_VOLATILITY] * 2
        assert [i.severity for i in issues] == [SeverityEnum.CRITICAL_ERROR, SeverityEnum.WARNING]
        assert all(i.period_label == "Period 2" for i in issues)

    @pytest.mark.parametrize(
        "share, severity",
        [(0.03, SeverityEnum.WARNING), (0.10, SeverityEnum.CRITICAL_ERROR)],
    )
    def test_balance_sheet_difference_share(self, first, share, severity):
        period = first.model_copy(
            update={"balance_sheet_difference": first.estimated_total_assets * share}
        )
        issues = validate_business_rules([period])
        assert _types(issues) == [ConsistencyCheckEnum.BS_DIFFERENCE_SHARE]
        assert issues[0].severity == severity

    def test_small_balance_sheet_difference_is_tolerated(self, first):
        period = first.model_copy(
            update={"balance_sheet_difference": first.estimated_total_assets * 0.005}
        )
        assert validate_business_rules([period]) == []

    def test_thresholds_are_configurable(self, first):
        settings = EngineSettings(thresholds=RuleThresholds(max_ap_days=30))
        assert _types(validate_business_rules([first], settings=settings)) == [
            ConsistencyCheckEnum.HIGH_AP_DAYS
        ]


def test_summary_counts_all_severities(four_period_input):
    four_period_input[0]["override_closing_cash"] = 120_000.5
    four_period_input[2]["override_cogs"] = 2_000_000
    issues = validate_financial_statements(derive_all(four_period_input))
    summary = summarize_issues(issues)
    assert summary["by_severity"]["INFO"] >= 1
    assert summary["by_severity"]["WARNING"] >= 1
    assert summary["by_severity"]["CRITICAL_ERROR"] >= 1
    assert summary["passes"] is False
