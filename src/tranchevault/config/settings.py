# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Resolved protocol settings.

``TrancheSettings`` is the frozen snapshot every operation works from. It is
built by ``ProtocolConfigReader`` from the external source with defaults
applied, so a single call never observes a parameter changing mid-flight.
"""

from __future__ import annotations

from pydantic import Field

from ..core.primitives import MAX_BPS, Model, days


class TrancheSettings(Model):
    """
    Protocol parameters shared by both tranches.

    Attributes:
        lock_duration: Seconds a subordinate deposit locks the receiver
        cooldown_duration: Seconds between starting a cooldown and the window opening;
            zero disables cooldown gating
        withdrawal_window: Seconds the window stays open after the cooldown ends
        max_subordination_ratio: Cap on subordinate holdings relative to the debt
            reference and to senior supply (bps)
        min_backing_ratio: Share of outstanding market debt the subordinate tranche
            must keep backing (bps, 0 = no floor)
        deployment_ratio: Target share of senior assets supplied to the market (bps)
        debt_cap: Configured market debt ceiling in asset units (0 = unset)
        min_deposit: Minimum first deposit into the senior tranche
        commitment_duration: Seconds senior shares stay transfer/withdraw restricted
            after a deposit
        profit_share: Raw profit-share fraction (bps). Validated by the
            yield-share synchronizer, not here.
    """

    lock_duration: int = Field(default=days(90), ge=0)
    cooldown_duration: int = Field(default=days(7), ge=0)
    withdrawal_window: int = Field(default=days(2), ge=0)
    max_subordination_ratio: int = Field(default=1_500, ge=0, le=MAX_BPS)
    min_backing_ratio: int = Field(default=0, ge=0, le=MAX_BPS)
    deployment_ratio: int = Field(default=MAX_BPS, ge=0, le=MAX_BPS)
    debt_cap: int = Field(default=0, ge=0)
    min_deposit: int = Field(default=0, ge=0)
    commitment_duration: int = Field(default=0, ge=0)
    profit_share: int = 0

    @property
    def cooldown_enabled(self) -> bool:
        """Withdrawals need an open cooldown window only when a duration is set."""
        return self.cooldown_duration > 0

    @property
    def backing_floor_enabled(self) -> bool:
        return self.min_backing_ratio > 0
