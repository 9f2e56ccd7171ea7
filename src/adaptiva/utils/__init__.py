# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from .numbers import is_blank, is_finite_number, parse_number, percent_of, safe_divide

__all__ = [
    "is_blank",
    "is_finite_number",
    "parse_number",
    "percent_of",
    "safe_divide",
]
