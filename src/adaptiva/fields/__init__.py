# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Adaptiva Fields

Field definition registry and the pre-derivation input validator.
"""

from .registry import (
    ALIAS_TO_KEY,
    FIELD_DESCRIPTORS,
    FIELD_REGISTRY,
    OVERRIDE_KEYS,
    FieldDescriptor,
    FieldRule,
    get_driver_field_keys,
    get_field,
    get_field_keys,
    get_override_field_keys,
    is_override_field,
    key_for_alias,
    read_raw,
)
from .validation import (
    FieldValidationError,
    validate_all_fields,
    validate_field,
    validate_period,
)

__all__ = [
    "ALIAS_TO_KEY",
    "FIELD_DESCRIPTORS",
    "FIELD_REGISTRY",
    "OVERRIDE_KEYS",
    "FieldDescriptor",
    "FieldRule",
    "FieldValidationError",
    "get_driver_field_keys",
    "get_field",
    "get_field_keys",
    "get_override_field_keys",
    "is_override_field",
    "key_for_alias",
    "read_raw",
    "validate_all_fields",
    "validate_field",
    "validate_period",
]
