# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Tranchevault core: primitives, token ledger, atomic execution and activity ledger.
"""

from .atomic import AtomicScope, SnapshotMixin, TransactionProcessor
from .errors import (
    ConfigurationError,
    EligibilityError,
    InsufficientAllowanceError,
    InsufficientBalanceError,
    LiquidityError,
    TrancheError,
    UnauthorizedError,
)
from .token import Token

__all__ = [
    "AtomicScope",
    "ConfigurationError",
    "EligibilityError",
    "InsufficientAllowanceError",
    "InsufficientBalanceError",
    "LiquidityError",
    "SnapshotMixin",
    "Token",
    "TrancheError",
    "TransactionProcessor",
    "UnauthorizedError",
]
