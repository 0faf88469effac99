# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Integer arithmetic helpers for share accounting.

All ledger quantities are integers in the smallest unit of their token.
Ratios are expressed in basis points against ``MAX_BPS``.
"""

from __future__ import annotations

import sys

from .enums import Rounding

MAX_BPS = 10_000

# Sentinel for "no limit" on deposit/withdraw capacity queries
UNLIMITED = sys.maxsize

SECONDS_PER_DAY = 86_400


def mul_div(x: int, y: int, denominator: int, rounding: Rounding = Rounding.FLOOR) -> int:
    """
    Compute ``x * y / denominator`` on integers with explicit rounding.

    Args:
        x: First factor (non-negative)
        y: Second factor (non-negative)
        denominator: Divisor, must be positive
        rounding: FLOOR (toward zero) or CEIL (away from zero)

    Returns:
        int: The rounded quotient

    Raises:
        ZeroDivisionError: If denominator is zero
        ValueError: If any factor is negative
    """
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator must be non-zero")
    if x < 0 or y < 0 or denominator < 0:
        raise ValueError(f"mul_div requires non-negative operands, got {x}, {y}, {denominator}")
    numerator = x * y
    quotient, remainder = divmod(numerator, denominator)
    if rounding == Rounding.CEIL and remainder:
        quotient += 1
    return quotient


def apply_bps(amount: int, bps: int, rounding: Rounding = Rounding.FLOOR) -> int:
    """Scale ``amount`` by a basis-point ratio."""
    return mul_div(amount, bps, MAX_BPS, rounding)


def days(n: int) -> int:
    """Convert whole days to seconds."""
    return n * SECONDS_PER_DAY
