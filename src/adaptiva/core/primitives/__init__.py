# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Adaptiva Core Primitives

Essential building blocks shared by every layer: the immutable base model,
enumerations, constrained types and engine settings.
"""

from .enums import (
    OVERRIDE_CATEGORIES,
    PERIOD_TYPE_LABELS,
    CalculationTypeEnum,
    ConsistencyCheckEnum,
    FieldCategoryEnum,
    FieldTypeEnum,
    FrequencyEnum,
    LineItem,
    SeverityEnum,
    StatementGroupEnum,
    ValidationCodeEnum,
)
from .model import Model
from .settings import EngineSettings, RuleThresholds, ToleranceSettings
from .types import PositiveFloat, PositiveInt

__all__ = [
    # Core models
    "Model",
    # Settings
    "EngineSettings",
    "RuleThresholds",
    "ToleranceSettings",
    # Enums
    "CalculationTypeEnum",
    "ConsistencyCheckEnum",
    "FieldCategoryEnum",
    "FieldTypeEnum",
    "FrequencyEnum",
    "LineItem",
    "SeverityEnum",
    "StatementGroupEnum",
    "ValidationCodeEnum",
    "OVERRIDE_CATEGORIES",
    "PERIOD_TYPE_LABELS",
    # Types
    "PositiveFloat",
    "PositiveInt",
]
