# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for Adaptiva components.

Isolated tests of individual modules without the full pipeline.
"""
