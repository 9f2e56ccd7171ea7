# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Adaptiva Execution Transport

Message envelopes for hosts that run the engine off their interactive
thread, and a thread-pool service that executes them.
"""

from .api import (
    CALCULATORS,
    Envelope,
    handle_calculation_request,
    handle_financial_request,
    run_calculation,
)
from .service import DEFAULT_CHANNEL, CalculationService, Ticket

__all__ = [
    "CALCULATORS",
    "DEFAULT_CHANNEL",
    "CalculationService",
    "Envelope",
    "Ticket",
    "handle_calculation_request",
    "handle_financial_request",
    "run_calculation",
]
