# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Adaptiva - Multi-Period Financial Statement Derivation Engine

Turns sparse per-period business drivers (revenue, margin, operating
expenses, working-capital balances, financing and investing activity) plus
optional line-item overrides into a consistent income statement, cash flow
statement, balance sheet estimate and working-capital schedule.

Key Entry Points:
- adaptiva.fields.validate_all_fields() - Input validation against the field registry
- adaptiva.engine.derive_all() - Sequential derivation of every period
- adaptiva.reporting.validate_series_consistency() - Accounting identity checks
- adaptiva.core.FinancialCalculations - NPV, IRR, payback, break-even, projections
- adaptiva.transport - Request/response envelopes and the background service

Example Usage:
    ```python
    from adaptiva.engine import derive_all
    from adaptiva.fields import validate_all_fields
    from adaptiva.reporting import IncomeStatementReport, validate_series_consistency

    errors = validate_all_fields(periods)
    results = derive_all(periods, period_type="quarterly")
    issues = validate_series_consistency(results)
    print(IncomeStatementReport(results).generate())
    ```
"""

import importlib
import logging

# Libraries leave handler configuration to the application
logging.getLogger(__name__).addHandler(logging.NullHandler())


# Public API surface (lazy-loaded on first attribute access)
__all__ = [  # noqa: F822 - lazy loading
    "core",
    "engine",
    "fields",
    "reporting",
    "transport",
    "utils",
]


_LAZY_MODULES = {
    "core": "adaptiva.core",
    "engine": "adaptiva.engine",
    "fields": "adaptiva.fields",
    "reporting": "adaptiva.reporting",
    "transport": "adaptiva.transport",
    "utils": "adaptiva.utils",
}


def __getattr__(name: str):
    module_path = _LAZY_MODULES.get(name)
    if module_path is None:
        raise AttributeError(f"module 'adaptiva' has no attribute '{name}'")
    module = importlib.import_module(module_path)
    globals()[name] = module
    return module
