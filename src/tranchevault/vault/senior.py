# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Senior tranche.

Accepts base-asset deposits, issues senior shares and deploys capital into
the credit market. The senior tranche:

- enforces the minimum first deposit and, when enabled, a receiver whitelist
- records a commitment on every deposit and blocks transfers and withdrawals
  until it has elapsed (the subordinate tranche is exempt on both sides)
- caps withdrawals at idle plus recoverable market liquidity and enforces
  ``max_loss_bps``
- settles profit and loss on ``report()``: profit share is minted to the
  subordinate tranche and losses are absorbed by burning the subordinate
  tranche's senior shares first
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Set

from pydantic import Field

from ..config import ProtocolConfigReader, TrancheSettings
from ..core.atomic import TransactionProcessor
from ..core.errors import ConfigurationError, EligibilityError, LiquidityError
from ..core.ledger import ActivityLedger
from ..core.primitives import (
    MAX_BPS,
    UNLIMITED,
    ActivityKind,
    Clock,
    Model,
    Role,
    TrancheKind,
)
from ..core.token import Token
from ..engine.deployment import DeploymentManager, RebalanceResult
from ..engine.loss_absorption import LossAbsorptionEngine
from ..engine.withdrawal_state import CommitmentBook
from ..engine.yield_share import YieldShareSynchronizer
from ..market import CreditMarket
from .base import OperationContext, OperationResult, TokenizedVault

logger = logging.getLogger(__name__)


class ReportResult(Model):
    """
    Outcome of one senior report.

    Attributes:
        timestamp: When the report executed
        total_assets_before: Booked total assets before settlement
        total_assets: Booked total assets after settlement
        profit: Realized gain since the previous report
        loss: Realized loss since the previous report
        fee_bps: Profit share applied
        fee_shares: Senior shares minted to the subordinate tranche
        burned_shares: Senior shares burned from the subordinate tranche
        uncovered_loss: Loss not covered by the subordinate tranche
    """

    timestamp: int
    total_assets_before: int = Field(ge=0)
    total_assets: int = Field(ge=0)
    profit: int = Field(default=0, ge=0)
    loss: int = Field(default=0, ge=0)
    fee_bps: int = Field(default=0, ge=0, le=MAX_BPS)
    fee_shares: int = Field(default=0, ge=0)
    burned_shares: int = Field(default=0, ge=0)
    uncovered_loss: int = Field(default=0, ge=0)

    @property
    def net(self) -> int:
        return self.profit - self.loss


class SeniorTranche(TokenizedVault):
    """
    Base-asset vault with commitment gating and credit market deployment.

    Example:
        ```python
        senior.deposit(1_000, "alice")
        clock.advance(days(7))
        senior.transfer("alice", "bob", 500)
        senior.report(caller="keeper")
        ```
    """

    kind = TrancheKind.SENIOR
    _snapshot_fields = TokenizedVault._snapshot_fields + (
        "_total_assets",
        "_performance_fee_bps",
        "_whitelist_enabled",
        "_whitelist",
        "_subordinate",
        "_last_report",
    )
    _limit_error = LiquidityError

    def __init__(
        self,
        address: str,
        asset: Token,
        shares: Token,
        market: CreditMarket,
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
        self.asset = asset
        self.market = market
        self.commitments = CommitmentBook()
        self.deployment = DeploymentManager(market, asset, address)
        self.synchronizer = YieldShareSynchronizer(reader)
        self._total_assets = 0
        self._performance_fee_bps = 0
        self._whitelist_enabled = False
        self._whitelist: Set[str] = set()
        self._subordinate: Optional[str] = None
        self._last_report = clock.now()

    # Views

    def total_assets(self) -> int:
        """Booked total assets; only deposits, withdrawals and reports change it."""
        return self._total_assets

    @property
    def subordinate(self) -> Optional[str]:
        return self._subordinate

    @property
    def performance_fee_bps(self) -> int:
        return self._performance_fee_bps

    @property
    def last_report(self) -> int:
        return self._last_report

    def idle_assets(self) -> int:
        return self.asset.balance_of(self.address)

    def deployed_assets(self) -> int:
        return self.deployment.deployed()

    def live_assets(self) -> int:
        """Idle plus deployed value as the market reports it now."""
        return self.idle_assets() + self.deployed_assets()

    def commitment_end(self, account: str) -> Optional[int]:
        settings = self.reader.snapshot()
        return self.commitments.commitment_end(account, settings.commitment_duration)

    def is_committed(self, account: str) -> bool:
        return self._is_committed(account, self.reader.snapshot(), self.clock.now())

    def is_whitelisted(self, account: str) -> bool:
        return account in self._whitelist

    def participants(self) -> List[Any]:
        return super().participants() + [self.commitments]

    # Limits

    def _deposit_limit(self, receiver: str, settings: TrancheSettings) -> int:
        if self.is_shutdown:
            return 0
        if self._whitelist_enabled and receiver not in self._whitelist:
            return 0
        return UNLIMITED

    def _withdraw_limit(self, owner: str, settings: TrancheSettings, now: int) -> int:
        if self._is_committed(owner, settings, now):
            return 0
        return self.idle_assets() + self.deployment.recoverable()

    def _is_committed(self, account: str, settings: TrancheSettings, now: int) -> bool:
        if self.is_shutdown or account == self._subordinate:
            return False
        return self.commitments.is_committed(account, now, settings.commitment_duration)

    def _commitment_error(self, account: str, settings: TrancheSettings) -> EligibilityError:
        end = self.commitments.commitment_end(account, settings.commitment_duration)
        return EligibilityError(f"{account} is committed in {self.address} until {end}")

    # Deposit hooks

    def _validate_deposit(self, ctx: OperationContext) -> None:
        if self._whitelist_enabled and ctx.receiver not in self._whitelist:
            raise EligibilityError(f"{ctx.receiver} is not whitelisted for {self.address}")
        if ctx.balance_before == 0 and ctx.assets < ctx.settings.min_deposit:
            raise EligibilityError(
                f"First deposit of {ctx.assets} is below the minimum of {ctx.settings.min_deposit}"
            )

    def _pull_assets(self, ctx: OperationContext) -> None:
        self.asset.move(ctx.caller, self.address, ctx.assets)
        self._total_assets += ctx.assets

    def _after_deposit(self, ctx: OperationContext, result: OperationResult) -> None:
        if ctx.receiver != self._subordinate:
            self.commitments.record_deposit(ctx.receiver, ctx.now)
        self._rebalance(ctx.settings)

    # Withdrawal hooks

    def _validate_withdraw(self, ctx: OperationContext) -> None:
        if self._is_committed(ctx.owner, ctx.settings, ctx.now):
            raise self._commitment_error(ctx.owner, ctx.settings)

    def _push_assets(self, ctx: OperationContext) -> int:
        idle = self.idle_assets()
        if idle < ctx.assets:
            self.deployment.free(ctx.assets - idle)
            idle = self.idle_assets()
        loss = max(0, ctx.assets - idle)
        if loss * MAX_BPS > ctx.assets * ctx.max_loss_bps:
            raise LiquidityError(
                f"Withdrawal of {ctx.assets} would realize a loss of {loss}, "
                f"above the {ctx.max_loss_bps} bps tolerance"
            )
        self._total_assets -= ctx.assets
        paid = ctx.assets - loss
        self.asset.move(self.address, ctx.receiver, paid)
        return paid

    def _after_withdraw(self, ctx: OperationContext, result: OperationResult) -> None:
        if self.shares.balance_of(ctx.owner) == 0:
            self.commitments.clear(ctx.owner)
        self._rebalance(ctx.settings)

    # Transfer hooks

    def _validate_transfer(
        self, sender: str, to: str, amount: int, settings: TrancheSettings, now: int
    ) -> None:
        if to == self._subordinate or sender == self._subordinate:
            return
        if self._is_committed(sender, settings, now):
            raise self._commitment_error(sender, settings)

    def _after_transfer(self, sender: str, to: str, amount: int) -> None:
        if self.shares.balance_of(sender) == 0:
            self.commitments.clear(sender)

    # Keeper operations

    def rebalance(self, caller: str) -> RebalanceResult:
        """Move capital toward the configured deployment ratio."""
        self._require_role(caller, Role.KEEPER)

        def validate() -> TrancheSettings:
            if self.is_shutdown:
                raise EligibilityError(f"{self.address} is shut down; use emergency_withdraw")
            return self.reader.snapshot()

        return self.pipeline.run(
            f"{self.address}.rebalance",
            validate=validate,
            mutate=self._rebalance,
            post_effects=(self._record_rebalance,),
        )

    def sync_tranche_share(self, caller: str) -> int:
        """
        Pull the profit-share fraction from configuration.

        Raises:
            UnauthorizedError: If ``caller`` is not the keeper
            ConfigurationError: If the configured value is negative or above 10_000 bps
        """
        self._require_role(caller, Role.KEEPER)
        return self.pipeline.run(
            f"{self.address}.sync_tranche_share",
            validate=self.synchronizer.read_profit_share,
            mutate=self._apply_tranche_share,
        )

    def report(self, caller: str) -> ReportResult:
        """
        Settle profit and loss since the last report.

        Order: sync the profit share (a bad value keeps the previous one),
        rebalance, then compare the live value of idle and deployed assets
        with the booked total. Profit mints fee shares to the subordinate
        tranche; loss burns the subordinate tranche's senior shares.
        """
        self._require_role(caller, Role.KEEPER)
        return self.pipeline.run(
            f"{self.address}.report",
            validate=self.reader.snapshot,
            mutate=self._settle,
            post_effects=(self._record_report,),
        )

    def _apply_tranche_share(self, fee_bps: int) -> int:
        previous = self._performance_fee_bps
        self._performance_fee_bps = fee_bps
        self.ledger.record(
            timestamp=self.clock.now(),
            vault=self.address,
            kind=ActivityKind.SYNC,
            note=f"{previous} -> {fee_bps} bps",
        )
        logger.info(f"{self.address}: profit share synced {previous} -> {fee_bps} bps")
        return fee_bps

    def _rebalance(self, settings: TrancheSettings) -> Optional[RebalanceResult]:
        if self.is_shutdown:
            logger.debug(f"{self.address}: shut down, skipping automatic rebalance")
            return None
        return self.deployment.rebalance(self.live_assets(), settings.deployment_ratio)

    def _record_rebalance(self, settings: TrancheSettings, result: RebalanceResult) -> None:
        self.ledger.record(
            timestamp=self.clock.now(),
            vault=self.address,
            kind=ActivityKind.REBALANCE,
            assets=result.deployed - result.recalled,
            note=f"target {result.plan.target}",
        )

    def _settle(self, settings: TrancheSettings) -> ReportResult:
        try:
            self._apply_tranche_share(self.synchronizer.read_profit_share())
        except ConfigurationError as e:
            logger.warning(
                f"{self.address}: keeping profit share at {self._performance_fee_bps} bps: {e}"
            )
        self._rebalance(settings)

        now = self.clock.now()
        before = self._total_assets
        after = self.live_assets()
        profit = max(0, after - before)
        loss = max(0, before - after)
        fee_shares = 0
        burned_shares = 0
        uncovered = loss

        if profit and self._subordinate is not None:
            fee = self.synchronizer.fee_assets(profit, self._performance_fee_bps)
            fee_shares = self.synchronizer.fee_shares(fee, after, self.shares.total_supply)
            if fee_shares:
                self.shares.mint(self._subordinate, fee_shares)
                self.ledger.record(
                    timestamp=now,
                    vault=self.address,
                    kind=ActivityKind.MINT_FEE,
                    account=self._subordinate,
                    assets=fee,
                    shares=fee_shares,
                )

        if loss and self._subordinate is not None:
            absorption = LossAbsorptionEngine(self.shares, self._subordinate).absorb(loss, before)
            burned_shares = absorption.shares_burned
            uncovered = absorption.uncovered_loss
            if burned_shares:
                self.ledger.record(
                    timestamp=now,
                    vault=self.address,
                    kind=ActivityKind.LOSS_BURN,
                    account=self._subordinate,
                    assets=-(loss - uncovered),
                    shares=-burned_shares,
                )

        self._total_assets = after
        self._last_report = now
        return ReportResult(
            timestamp=now,
            total_assets_before=before,
            total_assets=after,
            profit=profit,
            loss=loss,
            fee_bps=self._performance_fee_bps,
            fee_shares=fee_shares,
            burned_shares=burned_shares,
            uncovered_loss=uncovered,
        )

    def _record_report(self, settings: TrancheSettings, result: ReportResult) -> None:
        self.ledger.record(
            timestamp=result.timestamp,
            vault=self.address,
            kind=ActivityKind.REPORT,
            assets=result.net,
            note=f"fee {result.fee_shares} shares, burned {result.burned_shares} shares",
        )
        logger.info(
            f"{self.address}: reported profit {result.profit}, loss {result.loss}, "
            f"total assets {result.total_assets}"
        )

    # Governance

    def set_subordinate(self, caller: str, subordinate: str) -> None:
        """Register the subordinate tranche that receives fees and absorbs losses."""
        self._require_role(caller, Role.MANAGEMENT)
        with self.processor.atomic(f"{self.address}.set_subordinate"):
            self._subordinate = subordinate
            self.commitments.clear(subordinate)
        logger.info(f"{self.address}: subordinate tranche set to {subordinate}")

    def set_whitelist(self, caller: str, account: str, allowed: bool) -> None:
        self._require_role(caller, Role.MANAGEMENT)
        with self.processor.atomic(f"{self.address}.set_whitelist"):
            if allowed:
                self._whitelist.add(account)
            else:
                self._whitelist.discard(account)

    def set_whitelist_enabled(self, caller: str, enabled: bool) -> None:
        self._require_role(caller, Role.MANAGEMENT)
        with self.processor.atomic(f"{self.address}.set_whitelist_enabled"):
            self._whitelist_enabled = bool(enabled)
        logger.info(f"{self.address}: receiver whitelist enabled={enabled}")

    def emergency_withdraw(self, caller: str, amount: int) -> int:
        """
        Recall up to ``amount`` from the credit market after shutdown.

        Returns:
            int: Assets returned to idle
        """
        self._require_role(caller, Role.EMERGENCY_ADMIN)

        def validate() -> int:
            if not self.is_shutdown:
                raise EligibilityError(f"{self.address} must be shut down first")
            return amount

        def after(requested: int, freed: int) -> None:
            self.ledger.record(
                timestamp=self.clock.now(),
                vault=self.address,
                kind=ActivityKind.REBALANCE,
                assets=-freed,
                account=caller,
                note="emergency withdraw",
            )
            logger.info(f"{self.address}: emergency withdraw freed {freed} of {requested}")

        return self.pipeline.run(
            f"{self.address}.emergency_withdraw",
            validate=validate,
            mutate=self.deployment.free,
            post_effects=(after,),
        )
