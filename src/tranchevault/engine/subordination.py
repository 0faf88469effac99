# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Subordination Calculator.

Pure functions that turn a snapshot of holdings, market debt and configured
ratios into deposit and withdraw capacities for the subordinate tranche.
Nothing here reads or writes tranche state; callers build a
``SubordinationSnapshot`` at the start of their call and pass it in.

Units:
- "USD" values are base-asset units (the senior tranche's asset).
- Limits returned to the subordinate tranche are in senior shares, which is
  the subordinate tranche's asset.

Formulas:
    debt_reference = max(market_debt, debt_cap)
    debt_cap_usd   = debt_reference * max_subordination_ratio / 10_000
    deposit_usd    = max(0, debt_cap_usd - holdings_usd)
    supply_cap     = max(0, senior_supply * max_subordination_ratio / 10_000 - holdings_shares)
    deposit_limit  = min(to_shares(deposit_usd), supply_cap)

    debt_floor_usd = market_debt * min_backing_ratio / 10_000
    withdraw_usd   = 0 if holdings_usd <= debt_floor_usd else holdings_usd - debt_floor_usd
    withdraw_limit = to_shares(withdraw_usd)   (no floor when min_backing_ratio == 0)
"""

from __future__ import annotations

from dataclasses import dataclass

from ..core.primitives import Rounding, apply_bps, mul_div


@dataclass(frozen=True)
class SubordinationSnapshot:
    """
    Read-only inputs for one limit calculation.

    Attributes:
        holdings_shares: Senior shares held by the subordinate tranche
        senior_total_assets: Senior tranche total assets (USD)
        senior_total_supply: Senior share supply
        market_debt: Outstanding debt in the credit market (USD)
        debt_cap: Configured debt ceiling (USD, 0 = unset)
        max_subordination_ratio: bps
        min_backing_ratio: bps, 0 = no floor
    """

    holdings_shares: int
    senior_total_assets: int
    senior_total_supply: int
    market_debt: int
    debt_cap: int
    max_subordination_ratio: int
    min_backing_ratio: int

    @property
    def holdings_usd(self) -> int:
        return senior_shares_to_usd(self.holdings_shares, self, Rounding.FLOOR)


def senior_shares_to_usd(shares: int, snapshot: SubordinationSnapshot, rounding: Rounding) -> int:
    """Value senior shares at the snapshot's senior share price."""
    if snapshot.senior_total_supply == 0:
        return shares
    return mul_div(shares, snapshot.senior_total_assets, snapshot.senior_total_supply, rounding)


def usd_to_senior_shares(usd: int, snapshot: SubordinationSnapshot, rounding: Rounding) -> int:
    """Convert a USD amount into senior shares at the snapshot's share price."""
    if snapshot.senior_total_supply == 0:
        return usd
    if snapshot.senior_total_assets == 0:
        return 0
    return mul_div(usd, snapshot.senior_total_supply, snapshot.senior_total_assets, rounding)


def debt_reference(snapshot: SubordinationSnapshot) -> int:
    """Larger of actual market debt and the configured ceiling (0 when unset)."""
    return max(snapshot.market_debt, snapshot.debt_cap, 0)


def deposit_capacity_usd(snapshot: SubordinationSnapshot) -> int:
    """USD the subordinate tranche may still absorb under the debt-based cap."""
    debt_cap_usd = apply_bps(debt_reference(snapshot), snapshot.max_subordination_ratio)
    return max(0, debt_cap_usd - snapshot.holdings_usd)


def supply_capacity_shares(snapshot: SubordinationSnapshot) -> int:
    """Senior shares the subordinate tranche may still hold under the supply-based cap."""
    cap = apply_bps(snapshot.senior_total_supply, snapshot.max_subordination_ratio)
    return max(0, cap - snapshot.holdings_shares)


def deposit_limit(snapshot: SubordinationSnapshot) -> int:
    """
    Maximum senior shares that may be deposited into the subordinate tranche.

    Both caps apply; the tighter one wins.

    Example:
        # Senior supply 10,000 at 1:1, debt cap 10,000, ratio 15%, no holdings
        deposit_limit(snapshot)  # 1_500
    """
    by_debt = usd_to_senior_shares(deposit_capacity_usd(snapshot), snapshot, Rounding.FLOOR)
    return min(by_debt, supply_capacity_shares(snapshot))


def debt_floor_usd(snapshot: SubordinationSnapshot) -> int:
    return apply_bps(snapshot.market_debt, snapshot.min_backing_ratio, Rounding.CEIL)


def withdraw_capacity_usd(snapshot: SubordinationSnapshot) -> int:
    """USD of subordinate holdings not pinned by the minimum backing floor."""
    holdings = snapshot.holdings_usd
    if snapshot.min_backing_ratio <= 0:
        return holdings
    floor = debt_floor_usd(snapshot)
    if holdings <= floor:
        return 0
    return holdings - floor


def withdraw_limit(snapshot: SubordinationSnapshot) -> int:
    """
    Maximum senior shares the subordinate tranche may release to withdrawers.

    The cooldown-derived limit is applied separately by the tranche.
    """
    if snapshot.min_backing_ratio <= 0:
        return snapshot.holdings_shares
    shares = usd_to_senior_shares(withdraw_capacity_usd(snapshot), snapshot, Rounding.FLOOR)
    return min(shares, snapshot.holdings_shares)


def subordination_ratio_bps(snapshot: SubordinationSnapshot) -> int:
    """Current holdings as a fraction of senior supply (bps, floored)."""
    if snapshot.senior_total_supply == 0:
        return 0
    return mul_div(snapshot.holdings_shares, 10_000, snapshot.senior_total_supply)
