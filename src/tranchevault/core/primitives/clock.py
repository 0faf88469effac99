# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Time sources.

Every time-gated rule (commitment, lock, cooldown, withdrawal window) reads
the current timestamp from a clock injected at construction, so the engine
stays deterministic under test and under a replaying transaction processor.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current UNIX timestamp in seconds."""

    def now(self) -> int: ...


class SystemClock:
    """Wall-clock time."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    Clock that only moves when told to.

    Example:
        clock = ManualClock(start=1_700_000_000)
        clock.advance(days(7))
    """

    def __init__(self, start: int = 1_700_000_000) -> None:
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """Move time forward and return the new timestamp."""
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now += int(seconds)
        return self._now

    def set(self, timestamp: int) -> None:
        """Jump to an absolute timestamp (must not be in the past)."""
        if timestamp < self._now:
            raise ValueError("ManualClock cannot move backwards")
        self._now = int(timestamp)
