# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Integration tests covering validation, derivation, consistency and reporting together.
"""
