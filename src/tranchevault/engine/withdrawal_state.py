# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Withdrawal State Machine.

Per-account time gates for both tranches:

- ``CommitmentBook`` (senior): deposit timestamp per account. Shares are
  transfer and withdraw restricted while ``now < deposit_timestamp + commitment``.
- ``LockBook`` (subordinate): ``locked_until`` per account, extended to
  ``now + lock_duration`` on every deposit.
- ``CooldownBook`` (subordinate): one ``CooldownRecord`` per account with the
  cooldown end, window end and reserved shares.

Cooldown phases for an account:

    NONE ──start──▶ COOLING ──cooldown_end──▶ OPEN ──window_end──▶ EXPIRED
      ▲                │                        │                    │
      └──cancel────────┴────cancel / full withdraw───────────────────┘
    (start again from any phase replaces the record)

Records are created lazily and deleted when a position returns to zero.
Each book is a transaction participant in its own right so the tranche can
roll it back together with balances.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from ..config import TrancheSettings
from ..core.atomic import SnapshotMixin
from ..core.errors import EligibilityError

logger = logging.getLogger(__name__)


class CooldownPhase(str, Enum):
    NONE = "None"
    COOLING = "Cooling"
    OPEN = "Open"
    EXPIRED = "Expired"


@dataclass(slots=True)
class CooldownRecord:
    """
    Pending subordinate withdrawal.

    Attributes:
        cooldown_end: First second at which withdrawal is allowed
        window_end: Last second at which withdrawal is allowed (inclusive)
        shares: Subordinate shares reserved; may exceed the current balance
    """

    cooldown_end: int
    window_end: int
    shares: int

    def phase(self, now: int) -> CooldownPhase:
        if now < self.cooldown_end:
            return CooldownPhase.COOLING
        if now <= self.window_end:
            return CooldownPhase.OPEN
        return CooldownPhase.EXPIRED

    def is_open(self, now: int) -> bool:
        return self.phase(now) == CooldownPhase.OPEN

    def as_tuple(self) -> Tuple[int, int, int]:
        return self.cooldown_end, self.window_end, self.shares


class CommitmentBook(SnapshotMixin):
    """Senior-tranche commitment records keyed by account."""

    _snapshot_fields = ("_deposit_timestamps",)

    def __init__(self) -> None:
        self._deposit_timestamps: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._deposit_timestamps)

    def record_deposit(self, account: str, now: int) -> None:
        """Restart the commitment clock; later deposits always extend."""
        self._deposit_timestamps[account] = now

    def deposit_timestamp(self, account: str) -> Optional[int]:
        return self._deposit_timestamps.get(account)

    def commitment_end(self, account: str, duration: int) -> Optional[int]:
        timestamp = self._deposit_timestamps.get(account)
        if timestamp is None:
            return None
        return timestamp + duration

    def is_committed(self, account: str, now: int, duration: int) -> bool:
        end = self.commitment_end(account, duration)
        return end is not None and now < end

    def clear(self, account: str) -> None:
        self._deposit_timestamps.pop(account, None)


class LockBook(SnapshotMixin):
    """Subordinate-tranche lock records keyed by account."""

    _snapshot_fields = ("_locked_until",)

    def __init__(self) -> None:
        self._locked_until: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locked_until)

    def extend(self, account: str, now: int, duration: int) -> int:
        """Set the lock to ``now + duration`` and return the new expiry."""
        locked_until = now + duration
        self._locked_until[account] = locked_until
        return locked_until

    def locked_until(self, account: str) -> int:
        return self._locked_until.get(account, 0)

    def is_locked(self, account: str, now: int) -> bool:
        return now < self.locked_until(account)

    def clear(self, account: str) -> None:
        self._locked_until.pop(account, None)


class CooldownBook(SnapshotMixin):
    """Subordinate-tranche cooldown records keyed by account."""

    _snapshot_fields = ("_cooldowns",)

    def __init__(self) -> None:
        self._cooldowns: Dict[str, CooldownRecord] = {}

    def __len__(self) -> int:
        return len(self._cooldowns)

    def get(self, account: str) -> Optional[CooldownRecord]:
        return self._cooldowns.get(account)

    def status(self, account: str) -> Tuple[int, int, int]:
        """``(cooldown_end, window_end, shares)``; zeros when there is no record."""
        record = self._cooldowns.get(account)
        if record is None:
            return 0, 0, 0
        return record.as_tuple()

    def start(self, account: str, shares: int, now: int, settings: TrancheSettings) -> CooldownRecord:
        """Create or replace the account's cooldown."""
        cooldown_end = now + settings.cooldown_duration
        record = CooldownRecord(
            cooldown_end=cooldown_end,
            window_end=cooldown_end + settings.withdrawal_window,
            shares=shares,
        )
        self._cooldowns[account] = record
        return record

    def cancel(self, account: str) -> CooldownRecord:
        record = self._cooldowns.pop(account, None)
        if record is None:
            raise EligibilityError(f"No active cooldown for {account}")
        return record

    def reserved_shares(self, account: str) -> int:
        record = self._cooldowns.get(account)
        return record.shares if record is not None else 0

    def consume(self, account: str, shares: int, balance_after: int) -> Optional[CooldownRecord]:
        """
        Apply a withdrawal of ``shares`` to the account's cooldown.

        A withdrawal that meets or exceeds the reserved shares deletes the
        record. Otherwise the reservation shrinks and is clamped to the
        remaining balance.

        Returns:
            The surviving record, or None if it was deleted (or never existed).
        """
        record = self._cooldowns.get(account)
        if record is None:
            return None
        if shares >= record.shares:
            del self._cooldowns[account]
            return None
        record.shares -= shares
        if record.shares > balance_after:
            logger.warning(
                f"Cooldown for {account} reserved {record.shares} shares but only "
                f"{balance_after} remain; clamping"
            )
            record.shares = balance_after
        if record.shares == 0:
            del self._cooldowns[account]
            return None
        return record

    def clear(self, account: str) -> None:
        self._cooldowns.pop(account, None)


class WithdrawalStateMachine:
    """
    Lock and cooldown rules for the subordinate tranche.

    The machine owns no state itself; it composes a ``LockBook`` and a
    ``CooldownBook`` and answers eligibility questions against a settings
    snapshot and a timestamp.
    """

    def __init__(self, locks: LockBook, cooldowns: CooldownBook) -> None:
        self.locks = locks
        self.cooldowns = cooldowns

    def phase(self, account: str, now: int) -> CooldownPhase:
        record = self.cooldowns.get(account)
        if record is None:
            return CooldownPhase.NONE
        return record.phase(now)

    def withdrawable_shares(
        self, account: str, balance: int, now: int, settings: TrancheSettings
    ) -> int:
        """
        Shares the account may redeem under lock and cooldown rules alone.

        Zero while locked. With cooldowns disabled the whole balance is
        eligible; otherwise only the reserved shares of an open window,
        capped at the actual balance.
        """
        if self.locks.is_locked(account, now):
            return 0
        if not settings.cooldown_enabled:
            return balance
        record = self.cooldowns.get(account)
        if record is None or not record.is_open(now):
            return 0
        return min(record.shares, balance)

    def transferable_shares(self, account: str, balance: int, now: int) -> int:
        """Balance not reserved by a cooldown; zero while locked."""
        if self.locks.is_locked(account, now):
            return 0
        return max(0, balance - self.cooldowns.reserved_shares(account))

    def check_withdrawal(
        self, account: str, shares: int, balance: int, now: int, settings: TrancheSettings
    ) -> None:
        """Raise ``EligibilityError`` describing why ``shares`` cannot be redeemed."""
        if self.locks.is_locked(account, now):
            raise EligibilityError(
                f"{account} is locked until {self.locks.locked_until(account)}"
            )
        if settings.cooldown_enabled:
            phase = self.phase(account, now)
            if phase == CooldownPhase.NONE:
                raise EligibilityError(f"{account} has no cooldown; start one before withdrawing")
            if phase == CooldownPhase.COOLING:
                cooldown_end = self.cooldowns.get(account).cooldown_end
                raise EligibilityError(f"{account} is cooling down until {cooldown_end}")
            if phase == CooldownPhase.EXPIRED:
                raise EligibilityError(
                    f"Withdrawal window for {account} has closed; start a new cooldown"
                )
        allowed = self.withdrawable_shares(account, balance, now, settings)
        if shares > allowed:
            raise EligibilityError(
                f"{account} may withdraw at most {allowed} shares, requested {shares}"
            )

    def check_transfer(self, account: str, amount: int, balance: int, now: int) -> None:
        if self.locks.is_locked(account, now):
            raise EligibilityError(
                f"{account} is locked until {self.locks.locked_until(account)}"
            )
        transferable = self.transferable_shares(account, balance, now)
        if amount > transferable:
            raise EligibilityError(
                f"{account} may transfer at most {transferable} shares "
                f"({self.cooldowns.reserved_shares(account)} reserved by cooldown)"
            )

    def start_cooldown(
        self, account: str, shares: int, now: int, settings: TrancheSettings
    ) -> CooldownRecord:
        if shares <= 0:
            raise EligibilityError("Cooldown shares must be positive")
        if self.locks.is_locked(account, now):
            raise EligibilityError(
                f"{account} is locked until {self.locks.locked_until(account)}"
            )
        return self.cooldowns.start(account, shares, now, settings)

    def cancel_cooldown(self, account: str) -> CooldownRecord:
        return self.cooldowns.cancel(account)

    def on_deposit(self, receiver: str, now: int, settings: TrancheSettings) -> int:
        return self.locks.extend(receiver, now, settings.lock_duration)

    def on_withdrawal(self, owner: str, shares: int, balance_after: int) -> None:
        self.cooldowns.consume(owner, shares, balance_after)
        if balance_after == 0:
            self.locks.clear(owner)

    def on_transfer(self, sender: str, balance_after: int) -> None:
        if balance_after == 0:
            self.locks.clear(sender)
