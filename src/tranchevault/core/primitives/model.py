# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Base Pydantic model with common configuration.

    Immutable models for settings snapshots and value objects.
    Mutable ledger state (balances, withdrawal records) lives in plain
    runtime objects owned by the tranches.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,  # Snapshots must not drift during a call
        extra="forbid",  # Catches typos and missing field definitions immediately
    )
