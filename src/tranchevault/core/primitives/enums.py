# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from enum import Enum


class Rounding(Enum):
    """Rounding direction for share/asset conversions."""

    FLOOR = "floor"
    CEIL = "ceil"


class ConfigKey(str, Enum):
    """
    Keys understood by the external configuration source.

    Duration keys are in seconds, ratio keys in basis points, amount keys in
    the smallest unit of the base asset.
    """

    LOCK_DURATION = "lock_duration"
    COOLDOWN_DURATION = "cooldown_duration"
    WITHDRAWAL_WINDOW = "withdrawal_window"
    MAX_SUBORDINATION_RATIO = "max_subordination_ratio"
    MIN_BACKING_RATIO = "min_backing_ratio"
    DEPLOYMENT_RATIO = "deployment_ratio"
    DEBT_CAP = "debt_cap"
    MIN_DEPOSIT = "min_deposit"
    COMMITMENT_DURATION = "commitment_duration"
    PROFIT_SHARE = "profit_share"


class TrancheKind(str, Enum):
    """Which side of the capital structure a vault sits on."""

    SENIOR = "Senior"
    SUBORDINATE = "Subordinate"


class ActivityKind(str, Enum):
    """
    Classification of entries in the activity ledger.

    Amount signs follow the vault's point of view:
    - DEPOSIT / MINT_FEE: shares created (+)
    - WITHDRAW / LOSS_BURN: shares destroyed (-)
    - TRANSFER: shares moved between accounts (0 net)
    - REPORT / REBALANCE / SYNC / COOLDOWN_*: bookkeeping, no share change
    """

    DEPOSIT = "Deposit"
    WITHDRAW = "Withdraw"
    TRANSFER = "Transfer"
    MINT_FEE = "Fee Mint"
    LOSS_BURN = "Loss Burn"
    REPORT = "Report"
    REBALANCE = "Rebalance"
    SYNC = "Tranche Share Sync"
    COOLDOWN_START = "Cooldown Start"
    COOLDOWN_CANCEL = "Cooldown Cancel"
    SHUTDOWN = "Shutdown"


class Role(str, Enum):
    """Privileged roles on a tranche."""

    MANAGEMENT = "management"
    KEEPER = "keeper"
    EMERGENCY_ADMIN = "emergency_admin"


def enum_to_string(value) -> str:
    """Return the string value of an enum member, or ``str(value)`` otherwise."""
    if isinstance(value, Enum):
        return value.value
    return str(value)
