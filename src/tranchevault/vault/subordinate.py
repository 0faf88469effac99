# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Subordinate tranche.

Holds senior shares as its asset and issues subordinate shares against them.
It absorbs senior losses first (its senior shares are burned on a loss
report) and receives the profit share as newly minted senior shares.

Deposits are capped by the subordination calculator and lock the receiver
for ``lock_duration``. Withdrawals need an expired lock, an open cooldown
window (unless cooldowns are disabled) and must leave enough holdings to
meet the minimum backing ratio. Shutdown of either tranche lifts every
withdrawal restriction.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

from ..config import ProtocolConfigReader, TrancheSettings
from ..core.atomic import TransactionProcessor
from ..core.ledger import ActivityLedger
from ..core.primitives import ActivityKind, Clock, TrancheKind
from ..core.token import Token
from ..engine import subordination
from ..engine.subordination import SubordinationSnapshot
from ..engine.withdrawal_state import (
    CooldownBook,
    CooldownPhase,
    CooldownRecord,
    LockBook,
    WithdrawalStateMachine,
)
from .base import OperationContext, OperationResult, TokenizedVault
from .senior import SeniorTranche

logger = logging.getLogger(__name__)


class SubordinateTranche(TokenizedVault):
    """
    First-loss vault over senior shares.

    Example:
        ```python
        subordinate.deposit(1_500, "alice")       # pulls 1,500 senior shares
        clock.advance(days(90))
        subordinate.start_cooldown("alice", 1_500)
        clock.advance(days(7))
        subordinate.redeem(1_500, "alice", "alice")
        ```
    """

    kind = TrancheKind.SUBORDINATE

    def __init__(
        self,
        address: str,
        senior: SeniorTranche,
        shares: Token,
        reader: ProtocolConfigReader,
        clock: Clock,
        processor: TransactionProcessor,
        ledger: ActivityLedger,
        management: str,
        keeper: Optional[str] = None,
        emergency_admin: Optional[str] = None,
    ) -> None:
        super().__init__(
            address,
            shares,
            reader,
            clock,
            processor,
            ledger,
            management,
            keeper=keeper,
            emergency_admin=emergency_admin,
        )
        self.senior = senior
        self.locks = LockBook()
        self.cooldowns = CooldownBook()
        self.machine = WithdrawalStateMachine(self.locks, self.cooldowns)

    # Views

    def total_assets(self) -> int:
        """Senior shares held by this tranche."""
        return self.senior.shares.balance_of(self.address)

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown or self.senior.is_shutdown

    def subordination_snapshot(self, settings: Optional[TrancheSettings] = None) -> SubordinationSnapshot:
        """Read-only inputs for the subordination calculator, taken now."""
        settings = settings or self.reader.snapshot()
        return SubordinationSnapshot(
            holdings_shares=self.total_assets(),
            senior_total_assets=self.senior.total_assets(),
            senior_total_supply=self.senior.total_supply(),
            market_debt=self.senior.market.current_debt(),
            debt_cap=settings.debt_cap,
            max_subordination_ratio=settings.max_subordination_ratio,
            min_backing_ratio=settings.min_backing_ratio,
        )

    def subordination_ratio_bps(self) -> int:
        return subordination.subordination_ratio_bps(self.subordination_snapshot())

    def locked_until(self, account: str) -> int:
        return self.locks.locked_until(account)

    def get_cooldown_status(self, account: str) -> Tuple[int, int, int]:
        """``(cooldown_end, window_end, shares)``; all zero without a cooldown."""
        return self.cooldowns.status(account)

    def cooldown_phase(self, account: str) -> CooldownPhase:
        return self.machine.phase(account, self.clock.now())

    def participants(self) -> List[Any]:
        return super().participants() + [self.locks, self.cooldowns]

    # Limits

    def _deposit_limit(self, receiver: str, settings: TrancheSettings) -> int:
        if self.is_shutdown:
            return 0
        return subordination.deposit_limit(self.subordination_snapshot(settings))

    def _withdraw_limit(self, owner: str, settings: TrancheSettings, now: int) -> int:
        balance = self.shares.balance_of(owner)
        if self.is_shutdown:
            return self.convert_to_assets(balance)
        eligible = self.machine.withdrawable_shares(owner, balance, now, settings)
        if eligible == 0:
            return 0
        by_cooldown = self.convert_to_assets(eligible)
        by_backing = subordination.withdraw_limit(self.subordination_snapshot(settings))
        return min(by_cooldown, by_backing)

    # Deposit hooks

    def _pull_assets(self, ctx: OperationContext) -> None:
        self.senior.transfer(ctx.caller, self.address, ctx.assets)

    def _after_deposit(self, ctx: OperationContext, result: OperationResult) -> None:
        locked_until = self.machine.on_deposit(ctx.receiver, ctx.now, ctx.settings)
        logger.debug(f"{self.address}: {ctx.receiver} locked until {locked_until}")

    # Withdrawal hooks

    def _validate_withdraw(self, ctx: OperationContext) -> None:
        if self.is_shutdown:
            return
        self.machine.check_withdrawal(
            ctx.owner, ctx.shares, ctx.balance_before, ctx.now, ctx.settings
        )

    def _push_assets(self, ctx: OperationContext) -> int:
        self.senior.transfer(self.address, ctx.receiver, ctx.assets)
        return ctx.assets

    def _after_withdraw(self, ctx: OperationContext, result: OperationResult) -> None:
        self.machine.on_withdrawal(ctx.owner, result.shares, self.shares.balance_of(ctx.owner))

    # Transfer hooks

    def _validate_transfer(
        self, sender: str, to: str, amount: int, settings: TrancheSettings, now: int
    ) -> None:
        if self.is_shutdown:
            return
        self.machine.check_transfer(sender, amount, self.shares.balance_of(sender), now)

    def _after_transfer(self, sender: str, to: str, amount: int) -> None:
        self.machine.on_transfer(sender, self.shares.balance_of(sender))

    # Cooldown

    def start_cooldown(self, caller: str, shares: int) -> CooldownRecord:
        """
        Start (or restart) the caller's cooldown for ``shares``.

        ``shares`` may exceed the current balance; redemption is capped by the
        balance held when the window opens.

        Raises:
            EligibilityError: If ``shares`` is not positive or the caller is locked
        """

        def validate() -> Tuple[TrancheSettings, int]:
            return self.reader.snapshot(), self.clock.now()

        def mutate(context: Tuple[TrancheSettings, int]) -> CooldownRecord:
            settings, now = context
            return self.machine.start_cooldown(caller, shares, now, settings)

        def after(context: Tuple[TrancheSettings, int], record: CooldownRecord) -> None:
            self.ledger.record(
                timestamp=context[1],
                vault=self.address,
                kind=ActivityKind.COOLDOWN_START,
                account=caller,
                shares=record.shares,
                note=f"window {record.cooldown_end}..{record.window_end}",
            )
            logger.debug(
                f"{self.address}: {caller} cooling down {record.shares} shares "
                f"until {record.cooldown_end}"
            )

        return self.pipeline.run(
            f"{self.address}.start_cooldown", validate=validate, mutate=mutate, post_effects=(after,)
        )

    def cancel_cooldown(self, caller: str) -> CooldownRecord:
        """
        Clear the caller's cooldown.

        Raises:
            EligibilityError: If the caller has no cooldown
        """

        def after(now: int, record: CooldownRecord) -> None:
            self.ledger.record(
                timestamp=now,
                vault=self.address,
                kind=ActivityKind.COOLDOWN_CANCEL,
                account=caller,
                shares=record.shares,
            )

        return self.pipeline.run(
            f"{self.address}.cancel_cooldown",
            validate=self.clock.now,
            mutate=lambda now: self.machine.cancel_cooldown(caller),
            post_effects=(after,),
        )
