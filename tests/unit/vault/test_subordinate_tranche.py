# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for the subordinate tranche.

The ``staked_system`` fixture starts with alice holding 9,000 senior shares
and 1,000 subordinate shares (backed 1:1 by senior shares), locked for the
default 90 days.
"""

import pytest

from tests.conftest import (
    BORROWER,
    START,
    borrow,
    deposit_senior,
    make_system,
    open_cooldown_window,
    stake,
)
from tranchevault.core.errors import EligibilityError, UnauthorizedError
from tranchevault.core.primitives import ActivityKind, ConfigKey, days
from tranchevault.engine.withdrawal_state import CooldownPhase


class TestSubordinateDeposit:
    """Test suite for subordination-capped deposits."""

    def test_assets_are_senior_shares(self, staked_system):
        sub = staked_system.subordinate
        assert sub.total_assets() == 1_000
        assert sub.balance_of("alice") == 1_000
        assert staked_system.senior.balance_of("alice") == 9_000

    def test_limit_reflects_holdings(self, staked_system):
        sub = staked_system.subordinate
        assert sub.available_deposit_limit("alice") == 500
        with pytest.raises(EligibilityError, match="exceeds the limit"):
            stake(staked_system, "alice", 501)
        assert staked_system.senior.balance_of("alice") == 9_000
        assert sub.total_assets() == 1_000

    def test_deposit_extends_lock(self, staked_system):
        sub = staked_system.subordinate
        assert sub.locked_until("alice") == START + days(90)
        staked_system.clock.advance(days(10))
        stake(staked_system, "alice", 100)
        assert sub.locked_until("alice") == START + days(100)

    def test_proxy_deposit_locks_receiver(self, staked_system):
        sub = staked_system.subordinate
        deposit_senior(staked_system, "bob", 1_000)
        with pytest.raises(EligibilityError):
            sub.deposit(100, "carol", caller="bob")
        sub.set_depositor_whitelist("management", "bob", True)
        staked_system.clock.advance(days(1))
        sub.deposit(100, "carol", caller="bob")
        assert sub.balance_of("carol") == 100
        assert staked_system.senior.balance_of("bob") == 900
        assert sub.locked_until("carol") == START + days(91)
        assert sub.locked_until("bob") == 0

    def test_zero_limit_without_debt_reference(self):
        system = make_system()
        deposit_senior(system, "alice", 10_000)
        assert system.subordinate.available_deposit_limit("alice") == 0


class TestLockAndCooldown:
    """Test suite for lock, cooldown and window gating."""

    def test_locked_account_cannot_withdraw(self, staked_system):
        sub = staked_system.subordinate
        assert sub.available_withdraw_limit("alice") == 0
        with pytest.raises(EligibilityError, match="locked"):
            sub.redeem(100, "alice", "alice")

    def test_locked_account_cannot_start_cooldown(self, staked_system):
        with pytest.raises(EligibilityError, match="locked"):
            staked_system.subordinate.start_cooldown("alice", 100)

    def test_redeem_within_window(self, staked_system):
        sub = staked_system.subordinate
        open_cooldown_window(staked_system, "alice", 400)
        assert sub.cooldown_phase("alice") == CooldownPhase.OPEN
        assert sub.available_withdraw_limit("alice") == 400
        with pytest.raises(EligibilityError):
            sub.redeem(401, "alice", "alice")
        assert sub.redeem(400, "alice", "alice") == 400
        assert staked_system.senior.balance_of("alice") == 9_400
        assert sub.get_cooldown_status("alice") == (0, 0, 0)

    def test_partial_withdrawal_reduces_cooldown(self, staked_system):
        sub = staked_system.subordinate
        open_cooldown_window(staked_system, "alice", 400)
        assert sub.withdraw(100, "alice", "alice") == 100
        assert sub.get_cooldown_status("alice")[2] == 300

    def test_full_exit_clears_lock_and_cooldown(self, staked_system):
        sub = staked_system.subordinate
        open_cooldown_window(staked_system, "alice", 1_000)
        sub.redeem(1_000, "alice", "alice")
        assert sub.balance_of("alice") == 0
        assert sub.locked_until("alice") == 0
        assert sub.get_cooldown_status("alice") == (0, 0, 0)

    def test_cooldown_clamped_to_balance_after_redeem(self, staked_system):
        sub = staked_system.subordinate
        open_cooldown_window(staked_system, "alice", 1_500)
        assert sub.available_withdraw_limit("alice") == 1_000
        sub.redeem(400, "alice", "alice")
        assert sub.get_cooldown_status("alice")[2] == 600
        assert sub.get_cooldown_status("alice")[2] <= sub.balance_of("alice")

    def test_restart_replaces_cooldown(self, staked_system):
        sub = staked_system.subordinate
        staked_system.clock.set(sub.locked_until("alice"))
        sub.start_cooldown("alice", 400)
        staked_system.clock.advance(days(1))
        sub.start_cooldown("alice", 200)
        now = staked_system.clock.now()
        assert sub.get_cooldown_status("alice") == (now + days(7), now + days(9), 200)

    def test_cancel_cooldown(self, staked_system):
        sub = staked_system.subordinate
        with pytest.raises(EligibilityError):
            sub.cancel_cooldown("alice")
        staked_system.clock.set(sub.locked_until("alice"))
        sub.start_cooldown("alice", 400)
        sub.cancel_cooldown("alice")
        assert sub.get_cooldown_status("alice") == (0, 0, 0)
        kinds = list(staked_system.ledger.to_dataframe()["kind"])
        assert ActivityKind.COOLDOWN_START.value in kinds
        assert ActivityKind.COOLDOWN_CANCEL.value in kinds

    def test_disabled_cooldown_needs_only_lock(self):
        system = make_system({ConfigKey.DEBT_CAP: 10_000, ConfigKey.COOLDOWN_DURATION: 0})
        deposit_senior(system, "alice", 10_000)
        stake(system, "alice", 1_000)
        system.clock.advance(days(90))
        assert system.subordinate.redeem(1_000, "alice", "alice") == 1_000


class TestSubordinateTransfer:
    """Test suite for lock and cooldown restricted transfers."""

    def test_blocked_while_locked(self, staked_system):
        with pytest.raises(EligibilityError, match="locked"):
            staked_system.subordinate.transfer("alice", "bob", 10)

    def test_reserved_shares_cannot_move(self, staked_system):
        sub = staked_system.subordinate
        staked_system.clock.set(sub.locked_until("alice"))
        sub.start_cooldown("alice", 600)
        with pytest.raises(EligibilityError, match="reserved"):
            sub.transfer("alice", "bob", 401)
        sub.transfer("alice", "bob", 400)
        assert sub.balance_of("bob") == 400
        assert sub.locked_until("bob") == 0


class TestBackingFloor:
    """Test suite for the minimum backing ratio."""

    def test_floor_caps_withdrawal(self, staked_system):
        sub = staked_system.subordinate
        staked_system.config.set(ConfigKey.MIN_BACKING_RATIO, 1_000)
        borrow(staked_system, 5_000)
        open_cooldown_window(staked_system, "alice", 1_000)
        assert sub.available_withdraw_limit("alice") == 500
        with pytest.raises(EligibilityError, match="available limit"):
            sub.redeem(501, "alice", "alice")
        sub.redeem(500, "alice", "alice")
        assert sub.total_assets() == 500


class TestSubordinateShutdown:
    """Test suite for exit during shutdown."""

    def test_shutdown_bypasses_lock_and_limits(self, staked_system):
        sub = staked_system.subordinate
        staked_system.config.set(ConfigKey.MIN_BACKING_RATIO, 10_000)
        borrow(staked_system, 5_000)
        sub.shutdown("management")
        assert sub.available_deposit_limit("alice") == 0
        assert sub.available_withdraw_limit("alice") == 1_000
        assert sub.redeem(1_000, "alice", "alice") == 1_000

    def test_senior_shutdown_propagates(self, staked_system):
        staked_system.senior.shutdown("management")
        sub = staked_system.subordinate
        assert sub.is_shutdown
        with pytest.raises(EligibilityError, match="shut down"):
            stake(staked_system, "alice", 1)

    def test_shutdown_requires_role(self, staked_system):
        with pytest.raises(UnauthorizedError):
            staked_system.subordinate.shutdown("alice")


class TestLossPassThrough:
    def test_loss_lowers_subordinate_share_price(self, staked_system):
        borrow(staked_system, 5_000)
        staked_system.market.apply_external_loss(100, BORROWER)
        staked_system.senior.report("management")
        sub = staked_system.subordinate
        assert sub.total_assets() == 900
        assert sub.convert_to_assets(1_000) == 900
        assert sub.balance_of("alice") == 1_000
