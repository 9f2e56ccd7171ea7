# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Model(BaseModel):
    """Base Pydantic model with common configuration.

    Immutable models with snake_case attributes in Python and camelCase keys
    on the wire. Derivation never mutates a model; it builds a new one.
    """

    model_config = ConfigDict(
        frozen=True,  # Immutable models; a new record is built for every pass
        extra="forbid",  # Catches typos and missing field definitions immediately
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict:
        """Serialise with camelCase keys for external collaborators."""
        return self.model_dump(mode="json", by_alias=True)
