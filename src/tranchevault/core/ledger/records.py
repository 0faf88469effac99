# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Core data model for the activity ledger.

Each committed tranche operation leaves one or more immutable records behind.
Records are audit output; balances themselves live in the share tokens.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID, uuid4

from ..primitives import ActivityKind


@dataclass(frozen=True, slots=True)
class ActivityRecord:
    """
    Immutable record of a single tranche event.

    Attributes:
        timestamp: UNIX seconds at which the operation executed
        vault: Address of the tranche that produced the record
        kind: Event classification
        account: Primary account affected (owner, receiver, or None)
        counterparty: Other side of the event (receiver, caller, or None)
        assets: Asset amount in the vault's asset units (signed, see ActivityKind)
        shares: Share amount (signed, see ActivityKind)
        note: Free-form detail for debugging
        record_id: Unique identifier for auditability
    """

    timestamp: int
    vault: str
    kind: ActivityKind
    assets: int = 0
    shares: int = 0
    account: Optional[str] = None
    counterparty: Optional[str] = None
    note: str = ""

    record_id: UUID = field(default_factory=uuid4)
