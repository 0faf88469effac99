# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the share-ledger behaviour shared by both tranches, exercised
through the senior tranche.
"""

import pytest

from tests.conftest import BORROWER, borrow, deposit_senior
from tranchevault.core.errors import (
    EligibilityError,
    InsufficientAllowanceError,
    UnauthorizedError,
)
from tranchevault.core.primitives import Role


@pytest.fixture
def priced_system(system):
    """Senior share price of 1.5: 1,000 shares backed by 1,500 assets."""
    deposit_senior(system, "alice", 1_000)
    borrow(system, 500)
    system.market.accrue_interest(500, BORROWER)
    system.senior.report("management")
    return system


class TestConversions:
    """Test suite for conversion rounding."""

    def test_empty_vault_is_one_to_one(self, system):
        senior = system.senior
        assert senior.convert_to_shares(1_234) == 1_234
        assert senior.convert_to_assets(1_234) == 1_234

    def test_previews_round_against_caller(self, priced_system):
        senior = priced_system.senior
        assert senior.total_assets() == 1_500
        assert senior.total_supply() == 1_000
        assert senior.preview_deposit(100) == 66
        assert senior.preview_mint(66) == 99
        assert senior.preview_withdraw(100) == 67
        assert senior.preview_redeem(67) == 100

    def test_price_per_share(self, priced_system):
        assert priced_system.senior.price_per_share() == 1_500_000

    def test_deposit_minting_zero_shares_rejected(self, priced_system):
        priced_system.fund("bob", 1)
        with pytest.raises(EligibilityError, match="zero shares"):
            priced_system.senior.deposit(1, "bob")

    def test_non_positive_amounts_rejected(self, system):
        with pytest.raises(EligibilityError):
            system.senior.deposit(0, "alice")
        with pytest.raises(EligibilityError):
            system.senior.redeem(0, "alice", "alice")

    def test_max_withdraw_and_redeem(self, priced_system):
        senior = priced_system.senior
        # market liquidity: 1,500 supplied, 1,000 borrowed
        assert senior.available_withdraw_limit("alice") == 500
        assert senior.max_withdraw("alice") == 500
        assert senior.max_redeem("alice") == 333

    def test_mint_pulls_rounded_up_assets(self, priced_system):
        priced_system.fund("bob", 1_000)
        assets = priced_system.senior.mint(66, "bob")
        assert assets == 99
        assert priced_system.asset.balance_of("bob") == 901
        assert priced_system.senior.balance_of("bob") == 66


class TestAllowances:
    """Test suite for transfer_from and third-party withdrawals."""

    def test_transfer_from_spends_allowance(self, system):
        senior = system.senior
        deposit_senior(system, "alice", 1_000)
        senior.approve("alice", "bob", 100)
        senior.transfer_from("bob", "alice", "carol", 100)
        assert senior.balance_of("carol") == 100
        assert senior.allowance("alice", "bob") == 0
        with pytest.raises(InsufficientAllowanceError):
            senior.transfer_from("bob", "alice", "carol", 1)

    def test_withdraw_by_non_owner_needs_allowance(self, system):
        senior = system.senior
        deposit_senior(system, "alice", 1_000)
        with pytest.raises(InsufficientAllowanceError):
            senior.withdraw(100, "bob", "alice", caller="bob")
        senior.approve("alice", "bob", 100)
        senior.withdraw(100, "bob", "alice", caller="bob")
        assert system.asset.balance_of("bob") == 100
        assert senior.balance_of("alice") == 900

    def test_transfer_to_self_rejected(self, system):
        deposit_senior(system, "alice", 10)
        with pytest.raises(EligibilityError):
            system.senior.transfer("alice", "alice", 1)

    def test_negative_transfer_rejected(self, system):
        deposit_senior(system, "alice", 10)
        with pytest.raises(EligibilityError, match="non-negative"):
            system.senior.transfer("alice", "bob", -1)
        assert system.senior.balance_of("alice") == 10


class TestRoles:
    """Test suite for role checks."""

    def test_management_defaults_to_all_roles(self, system):
        senior = system.senior
        assert senior.role(Role.KEEPER) == "management"
        assert senior.role(Role.EMERGENCY_ADMIN) == "management"

    def test_set_keeper(self, system):
        senior = system.senior
        senior.set_keeper("management", "keeper")
        assert senior.role(Role.KEEPER) == "keeper"
        senior.report("keeper")

    def test_non_management_cannot_assign_roles(self, system):
        with pytest.raises(UnauthorizedError):
            system.senior.set_keeper("bob", "bob")

    def test_unauthorized_is_permission_error(self, system):
        with pytest.raises(PermissionError):
            system.senior.report("bob")

    def test_depositor_whitelist_requires_management(self, system):
        with pytest.raises(UnauthorizedError):
            system.senior.set_depositor_whitelist("bob", "bob", True)
