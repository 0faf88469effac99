# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the subordination calculator.
"""

from dataclasses import replace

import pytest

from tranchevault.core.primitives import Rounding
from tranchevault.engine import subordination
from tranchevault.engine.subordination import SubordinationSnapshot


def create_snapshot(**overrides) -> SubordinationSnapshot:
    """Senior supply 10,000 at 1:1, no holdings, no debt, 15% cap."""
    values = dict(
        holdings_shares=0,
        senior_total_assets=10_000,
        senior_total_supply=10_000,
        market_debt=0,
        debt_cap=0,
        max_subordination_ratio=1_500,
        min_backing_ratio=0,
    )
    values.update(overrides)
    return SubordinationSnapshot(**values)


class TestDebtReference:
    """Test suite for the debt reference."""

    def test_no_debt_and_no_cap_is_zero(self):
        assert subordination.debt_reference(create_snapshot()) == 0

    def test_configured_cap_used_as_is(self):
        assert subordination.debt_reference(create_snapshot(debt_cap=50_000)) == 50_000
        assert subordination.debt_reference(create_snapshot(debt_cap=4_000)) == 4_000

    def test_supply_cap_limits_oversized_debt_cap(self):
        snapshot = create_snapshot(debt_cap=50_000)
        assert subordination.deposit_capacity_usd(snapshot) == 7_500
        assert subordination.deposit_limit(snapshot) == 1_500

    def test_actual_debt_wins_when_larger(self):
        snapshot = create_snapshot(market_debt=8_000, debt_cap=5_000)
        assert subordination.debt_reference(snapshot) == 8_000


class TestDepositLimit:
    """Test suite for deposit capacity."""

    def test_fifteen_percent_of_supply(self):
        snapshot = create_snapshot(debt_cap=10_000)
        assert subordination.deposit_limit(snapshot) == 1_500

    def test_zero_without_debt_or_cap(self):
        assert subordination.deposit_limit(create_snapshot()) == 0

    def test_reduced_by_existing_holdings(self):
        snapshot = create_snapshot(debt_cap=10_000, holdings_shares=1_000)
        assert subordination.deposit_limit(snapshot) == 500

    def test_never_negative(self):
        snapshot = create_snapshot(debt_cap=10_000, holdings_shares=2_000)
        assert subordination.deposit_limit(snapshot) == 0

    def test_debt_based_cap_binds_below_supply_cap(self):
        snapshot = create_snapshot(market_debt=4_000)
        assert subordination.deposit_limit(snapshot) == 600

    def test_supply_cap_binds_when_share_price_above_one(self):
        # 1 senior share = 2 USD; debt of 20,000 would allow 1,500 shares,
        # the supply cap allows 1,500 as well
        snapshot = create_snapshot(senior_total_assets=20_000, market_debt=20_000)
        assert subordination.deposit_limit(snapshot) == 1_500

    def test_invariant_holds_after_filling_limit(self):
        snapshot = create_snapshot(debt_cap=1_000_000, senior_total_supply=9_999, senior_total_assets=10_007)
        limit = subordination.deposit_limit(snapshot)
        filled = replace(snapshot, holdings_shares=limit)
        assert filled.holdings_shares * 10_000 // filled.senior_total_supply <= 1_500
        assert subordination.deposit_limit(filled) == 0


class TestWithdrawLimit:
    """Test suite for the minimum backing floor."""

    def test_no_floor_returns_all_holdings(self):
        snapshot = create_snapshot(holdings_shares=600, market_debt=5_000)
        assert subordination.withdraw_limit(snapshot) == 600

    def test_floor_pins_holdings(self):
        snapshot = create_snapshot(holdings_shares=600, market_debt=5_000, min_backing_ratio=1_000)
        assert subordination.debt_floor_usd(snapshot) == 500
        assert subordination.withdraw_limit(snapshot) == 100

    def test_zero_when_at_or_below_floor(self):
        snapshot = create_snapshot(holdings_shares=500, market_debt=5_000, min_backing_ratio=1_000)
        assert subordination.withdraw_limit(snapshot) == 0

    def test_floor_rounds_up(self):
        snapshot = create_snapshot(market_debt=1_001, min_backing_ratio=1_000)
        assert subordination.debt_floor_usd(snapshot) == 101


class TestConversions:
    """Test suite for share and USD conversions."""

    def test_empty_senior_converts_one_to_one(self):
        snapshot = create_snapshot(senior_total_assets=0, senior_total_supply=0)
        assert subordination.usd_to_senior_shares(10, snapshot, Rounding.FLOOR) == 10
        assert subordination.senior_shares_to_usd(10, snapshot, Rounding.FLOOR) == 10

    @pytest.mark.parametrize(
        "rounding, expected",
        [(Rounding.FLOOR, 6), (Rounding.CEIL, 7)],
    )
    def test_rounding(self, rounding, expected):
        snapshot = create_snapshot(senior_total_assets=3, senior_total_supply=2)
        assert subordination.usd_to_senior_shares(10, snapshot, rounding) == expected

    def test_ratio_bps(self):
        snapshot = create_snapshot(holdings_shares=1_500)
        assert subordination.subordination_ratio_bps(snapshot) == 1_500
        assert subordination.subordination_ratio_bps(create_snapshot(senior_total_supply=0)) == 0
