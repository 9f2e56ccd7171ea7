# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Base reporting classes.

Reports read a finished sequence of `CalculatedPeriodData` records and lay
them out for presentation. They only format and present data, never
perform calculations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from ..core.primitives import FrequencyEnum
from ..engine.records import CalculatedPeriodData

_PERIOD_NAMES: Dict[FrequencyEnum, str] = {
    FrequencyEnum.ANNUAL: "Year",
    FrequencyEnum.QUARTERLY: "Quarter",
    FrequencyEnum.MONTHLY: "Month",
}


def default_period_labels(count: int, period_type: FrequencyEnum = FrequencyEnum.ANNUAL) -> List[str]:
    """Labels like "Year 1", "Year 2" for `count` periods."""
    name = _PERIOD_NAMES[period_type]
    return [f"{name} {i + 1}" for i in range(count)]


class BaseReport(ABC):
    """
    Abstract base class for all report formatters.

    Reports operate on the derived period records and transform them into
    presentation-ready formats.
    """

    def __init__(
        self,
        periods: Sequence[CalculatedPeriodData],
        labels: Optional[Sequence[str]] = None,
        period_type: FrequencyEnum = FrequencyEnum.ANNUAL,
    ):
        """
        Initialize report with derived periods.

        Args:
            periods: Output of `derive_all`, oldest first
            labels: Column label per period; defaults to "Year 1", "Year 2", ...
            period_type: Used for the default labels
        """
        if not all(isinstance(p, CalculatedPeriodData) for p in periods):
            raise TypeError("Reports require CalculatedPeriodData records")
        if labels is not None and len(labels) != len(periods):
            raise ValueError(f"Expected {len(periods)} labels, got {len(labels)}")

        self._periods = tuple(periods)
        self._labels = list(labels) if labels is not None else default_period_labels(
            len(periods), period_type
        )

    @property
    def labels(self) -> List[str]:
        return list(self._labels)

    @abstractmethod
    def generate(self, **kwargs) -> Any:
        """Transform the periods into the report's output format."""
        pass
