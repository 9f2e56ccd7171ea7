# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Adaptiva test suite.

Organized into unit, integration and performance test categories.
"""
