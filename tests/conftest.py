# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Test utilities and fixtures for Tranchevault testing.

This module provides builders for fully wired tranche systems and small
helpers for the common setup steps (funding, senior deposits, staking into
the subordinate tranche, creating market debt).
"""

from __future__ import annotations

from typing import Dict, Optional

import pytest

from tranchevault.config import InMemoryConfigSource, ProtocolConfigReader
from tranchevault.core.primitives import ConfigKey, ManualClock
from tranchevault.core.token import Token
from tranchevault.system import TrancheSystem, build_tranche_system

START = 1_700_000_000
BORROWER = "borrower"


# System builders
def make_system(overrides: Optional[Dict[ConfigKey, int]] = None) -> TrancheSystem:
    """
    Build a tranche system on a manual clock.

    Args:
        overrides: Configuration values to set on a fresh in-memory source

    Returns:
        TrancheSystem with management acting as keeper and emergency admin
    """
    return build_tranche_system(
        InMemoryConfigSource(overrides or {}), clock=ManualClock(start=START)
    )


def deposit_senior(system: TrancheSystem, account: str, amount: int) -> int:
    """Fund ``account`` with base asset and deposit it all; returns shares."""
    system.fund(account, amount)
    return system.senior.deposit(amount, account)


def stake(system: TrancheSystem, account: str, senior_shares: int) -> int:
    """Deposit senior shares into the subordinate tranche; returns subordinate shares."""
    return system.subordinate.deposit(senior_shares, account)


def open_cooldown_window(system: TrancheSystem, account: str, shares: int) -> None:
    """Wait out the lock, start a cooldown and advance to the window opening."""
    settings = system.reader.snapshot()
    locked_until = system.subordinate.locked_until(account)
    if system.clock.now() < locked_until:
        system.clock.set(locked_until)
    system.subordinate.start_cooldown(account, shares)
    system.clock.advance(settings.cooldown_duration)


def borrow(system: TrancheSystem, amount: int, borrower: str = BORROWER) -> None:
    """Create market debt against the senior tranche's supplied liquidity."""
    system.market.borrow(borrower, amount)


def assert_supply_consistent(token: Token) -> None:
    assert sum(token.holders().values()) == token.total_supply


# Fixtures
@pytest.fixture
def config() -> InMemoryConfigSource:
    return InMemoryConfigSource()


@pytest.fixture
def reader(config: InMemoryConfigSource) -> ProtocolConfigReader:
    return ProtocolConfigReader(config)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=START)


@pytest.fixture
def system() -> TrancheSystem:
    """Default system with a debt cap large enough to make the supply cap bind."""
    return make_system({ConfigKey.DEBT_CAP: 1_000_000_000})


@pytest.fixture
def staked_system() -> TrancheSystem:
    """
    Alice holds 10,000 senior shares and has staked 1,000 of them.

    Senior supply is 10,000 at 1:1, fully deployed. Alice's subordinate
    lock runs for the default 90 days from ``START``.
    """
    system = make_system({ConfigKey.DEBT_CAP: 10_000})
    deposit_senior(system, "alice", 10_000)
    stake(system, "alice", 1_000)
    return system
