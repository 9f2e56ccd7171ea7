# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Adaptiva Reporting Module

Read-only consumers of the derived periods: the consistency validator,
statement constraint and business-rule checks, and pandas statement reports.

    results = derive_all(inputs)
    issues = validate_financial_statements(results)
    income = IncomeStatementReport(results).generate()
"""

from .base import BaseReport, default_period_labels
from .consistency import (
    ConsistencyIssue,
    resolve_labels,
    summarize_issues,
    validate_internal_ssot_consistency,
    validate_series_consistency,
)
from .rules import (
    active_overrides,
    validate_business_rules,
    validate_financial_statements,
    validate_override_consistency,
    validate_statement_constraints,
)
from .statements import (
    BalanceSheetReport,
    CashFlowReport,
    IncomeStatementReport,
    Line,
    StatementReport,
    WorkingCapitalReport,
    to_dataframe,
)

__all__ = [
    # Base classes for custom reports
    "BaseReport",
    "Line",
    "StatementReport",
    "default_period_labels",
    # Statements
    "IncomeStatementReport",
    "CashFlowReport",
    "BalanceSheetReport",
    "WorkingCapitalReport",
    "to_dataframe",
    # Consistency
    "ConsistencyIssue",
    "summarize_issues",
    "validate_internal_ssot_consistency",
    "resolve_labels",
    "validate_series_consistency",
    # Statement constraints and business rules
    "active_overrides",
    "validate_business_rules",
    "validate_financial_statements",
    "validate_override_consistency",
    "validate_statement_constraints",
]
