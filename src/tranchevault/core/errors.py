# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Error taxonomy for tranche operations.

All errors derive from ``ValueError`` so callers that already guard model
input with ``except ValueError`` keep working. Every error aborts the whole
operation; the transaction processor restores the pre-call state.
"""

from __future__ import annotations


class TrancheError(ValueError):
    """Base class for all tranche engine errors."""


class EligibilityError(TrancheError):
    """
    The caller is not currently allowed to perform the operation.

    Raised for below-minimum deposits, non-whitelisted proxy deposits,
    active commitment or lock periods, withdrawals outside the cooldown
    window and subordination limits.
    """


class LiquidityError(TrancheError):
    """Not enough idle or recoverable assets to honour a withdrawal in full."""


class ConfigurationError(TrancheError):
    """A configuration value is out of its permitted range."""


class UnauthorizedError(TrancheError, PermissionError):
    """The caller does not hold the role the operation requires."""


class InsufficientBalanceError(TrancheError):
    """A token balance is too small for the requested debit."""


class InsufficientAllowanceError(TrancheError):
    """A spender's allowance is too small for the requested debit."""


__all__ = [
    "ConfigurationError",
    "EligibilityError",
    "InsufficientAllowanceError",
    "InsufficientBalanceError",
    "LiquidityError",
    "TrancheError",
    "UnauthorizedError",
]
