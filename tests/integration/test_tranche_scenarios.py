# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
End-to-end scenarios across both tranches, the credit market and the
transaction processor.
"""

from unittest.mock import patch

import pytest

from tests.conftest import (
    BORROWER,
    START,
    assert_supply_consistent,
    borrow,
    deposit_senior,
    make_system,
    open_cooldown_window,
    stake,
)
from tranchevault.core.errors import EligibilityError, TrancheError
from tranchevault.core.primitives import ConfigKey, days


class TestCommitmentBoundary:
    """Senior deposit of 1,000 with a 7 day commitment."""

    @pytest.fixture
    def committed(self):
        system = make_system({ConfigKey.COMMITMENT_DURATION: days(7)})
        deposit_senior(system, "alice", 1_000)
        return system

    def test_one_second_early_fails(self, committed):
        committed.clock.set(START + days(7) - 1)
        with pytest.raises(EligibilityError, match="committed"):
            committed.senior.transfer("alice", "bob", 100)

    def test_exactly_at_end_succeeds(self, committed):
        committed.clock.set(START + days(7))
        committed.senior.transfer("alice", "bob", 100)
        assert committed.senior.balance_of("bob") == 100

    def test_one_second_late_succeeds(self, committed):
        committed.clock.set(START + days(7) + 1)
        committed.senior.transfer("alice", "bob", 100)
        assert committed.senior.balance_of("bob") == 100


class TestSubordinationCap:
    """Senior supply of 10,000 with a 15% subordination cap."""

    @pytest.fixture
    def funded(self):
        system = make_system({ConfigKey.DEBT_CAP: 10_000})
        deposit_senior(system, "alice", 10_000)
        return system

    def test_1501_rejected(self, funded):
        with pytest.raises(EligibilityError):
            stake(funded, "alice", 1_501)
        assert funded.subordinate.total_assets() == 0

    def test_1500_accepted(self, funded):
        assert stake(funded, "alice", 1_500) == 1_500
        ratio = funded.subordinate.total_assets() * 10_000 // funded.senior.total_supply()
        assert ratio <= 1_500

    def test_ratio_holds_across_many_deposits(self, funded):
        deposit_senior(funded, "bob", 3_333)
        for account, amount in [("alice", 700), ("bob", 400), ("alice", 1_000)]:
            limit = funded.subordinate.available_deposit_limit(account)
            stake(funded, account, min(amount, limit))
            holdings = funded.subordinate.total_assets()
            assert holdings * 10_000 // funded.senior.total_supply() <= 1_500
        assert funded.subordinate.available_deposit_limit("alice") == 0


class TestLossAbsorption:
    """Loss report of 100 units while the subordinate tranche holds 150."""

    def test_burns_exactly_the_loss(self):
        system = make_system({ConfigKey.DEBT_CAP: 10_000})
        deposit_senior(system, "alice", 5_000)
        deposit_senior(system, "bob", 5_000)
        stake(system, "alice", 150)
        borrow(system, 5_000)
        system.market.apply_external_loss(100, BORROWER)

        before = system.senior.shares.holders()
        result = system.senior.report("management")
        after = system.senior.shares.holders()

        sub = system.subordinate.address
        assert result.burned_shares == 100
        assert before[sub] - after[sub] == 100
        assert after["alice"] == before["alice"]
        assert after["bob"] == before["bob"]
        assert system.senior.convert_to_assets(5_000) == 5_000
        assert_supply_consistent(system.senior.shares)

    def test_excess_loss_falls_through(self):
        system = make_system({ConfigKey.DEBT_CAP: 10_000})
        deposit_senior(system, "alice", 10_000)
        stake(system, "alice", 150)
        borrow(system, 5_000)
        system.market.apply_external_loss(300, BORROWER)

        result = system.senior.report("management")

        assert result.burned_shares == 150
        assert result.uncovered_loss == 150
        assert system.senior.balance_of(system.subordinate.address) == 0
        assert system.senior.total_assets() == 9_700
        assert system.senior.total_supply() == 9_850
        assert system.subordinate.total_assets() == 0


class TestCooldownWindow:
    """Cooldown started for 100 shares; limit checked around the window."""

    @pytest.fixture
    def cooling(self):
        system = make_system({ConfigKey.DEBT_CAP: 10_000})
        deposit_senior(system, "alice", 10_000)
        stake(system, "alice", 100)
        system.clock.set(system.subordinate.locked_until("alice"))
        system.subordinate.start_cooldown("alice", 100)
        return system

    def test_limit_around_window(self, cooling):
        sub = cooling.subordinate
        cooldown_end, window_end, shares = sub.get_cooldown_status("alice")
        assert shares == 100

        cooling.clock.set(cooldown_end - 1)
        assert sub.available_withdraw_limit("alice") == 0
        cooling.clock.set(cooldown_end)
        assert sub.available_withdraw_limit("alice") > 0
        cooling.clock.set(window_end)
        assert sub.available_withdraw_limit("alice") > 0
        cooling.clock.set(window_end + 1)
        assert sub.available_withdraw_limit("alice") == 0

    def test_expired_window_needs_new_cooldown(self, cooling):
        sub = cooling.subordinate
        _, window_end, _ = sub.get_cooldown_status("alice")
        cooling.clock.set(window_end + 1)
        with pytest.raises(EligibilityError, match="closed"):
            sub.redeem(100, "alice", "alice")
        sub.start_cooldown("alice", 100)
        cooling.clock.advance(days(7))
        assert sub.redeem(100, "alice", "alice") == 100


class TestRoundTrip:
    """First deposits at 1:1 come back whole after the time gates expire."""

    def test_senior_and_subordinate_round_trip(self):
        system = make_system(
            {ConfigKey.DEBT_CAP: 10_000, ConfigKey.COMMITMENT_DURATION: days(7)}
        )
        assert deposit_senior(system, "alice", 10_000) == 10_000
        assert stake(system, "alice", 1_000) == 1_000

        open_cooldown_window(system, "alice", 1_000)
        assert system.subordinate.redeem(1_000, "alice", "alice") == 1_000
        assert system.senior.balance_of("alice") == 10_000

        assert system.senior.redeem(10_000, "alice", "alice") == 10_000
        assert system.asset.balance_of("alice") == 10_000


class TestAtomicity:
    """Failures anywhere in an operation leave no trace."""

    def test_failed_post_effect_restores_everything(self):
        system = make_system({ConfigKey.DEBT_CAP: 10_000})
        deposit_senior(system, "alice", 10_000)
        records = len(system.ledger)

        with patch.object(
            system.subordinate, "_after_deposit", side_effect=RuntimeError("hook failed")
        ):
            with pytest.raises(RuntimeError):
                stake(system, "alice", 500)

        assert system.senior.balance_of("alice") == 10_000
        assert system.senior.balance_of(system.subordinate.address) == 0
        assert system.subordinate.total_supply() == 0
        assert system.subordinate.locked_until("alice") == 0
        assert len(system.ledger) == records

    def test_rejected_operations_change_nothing(self):
        system = make_system({ConfigKey.DEBT_CAP: 10_000})
        deposit_senior(system, "alice", 10_000)
        state = (
            system.asset.holders(),
            system.senior.shares.holders(),
            system.subordinate.shares.holders(),
            len(system.ledger),
        )
        for attempt in (
            lambda: stake(system, "alice", 5_000),
            lambda: system.subordinate.redeem(1, "alice", "alice"),
            lambda: system.senior.withdraw(20_000, "alice", "alice"),
        ):
            with pytest.raises(TrancheError):
                attempt()
        assert state == (
            system.asset.holders(),
            system.senior.shares.holders(),
            system.subordinate.shares.holders(),
            len(system.ledger),
        )


class TestSupplyInvariant:
    """Balances sum to total supply through a mixed sequence of operations."""

    def test_mixed_sequence(self):
        system = make_system(
            {ConfigKey.DEBT_CAP: 100_000, ConfigKey.PROFIT_SHARE: 3_000}
        )
        deposit_senior(system, "alice", 40_000)
        deposit_senior(system, "bob", 25_000)
        stake(system, "alice", 4_000)
        stake(system, "bob", 2_500)
        borrow(system, 30_000)

        system.clock.advance(days(30))
        system.market.accrue_interest(2_000, BORROWER)
        system.senior.report("management")
        system.senior.transfer("bob", "carol", 1_000)

        system.clock.advance(days(60))
        system.market.apply_external_loss(1_500, BORROWER)
        system.senior.report("management")
        open_cooldown_window(system, "bob", 1_000)
        system.subordinate.redeem(1_000, "bob", "bob")
        system.senior.redeem(500, "carol", "carol")

        for token in (system.asset, system.senior.shares, system.subordinate.shares):
            assert_supply_consistent(token)
        assert system.senior.total_assets() == system.senior.live_assets()
