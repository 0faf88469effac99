# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Share-ledger vault shared by both tranches.

``TokenizedVault`` owns the parts of a tranche that do not depend on which
side of the capital structure it sits on:

- share/asset conversion with explicit rounding (never in the caller's favour)
- deposit, mint, withdraw, redeem and share transfers, each expressed as a
  ``validate -> mutate -> post effects`` pipeline inside one atomic scope
- roles (management, keeper, emergency admin), the proxy-depositor whitelist
  and emergency shutdown
- activity ledger entries for every committed operation

Subclasses supply the asset side (``total_assets``, how assets are pulled in
and pushed out) and their own eligibility rules through the ``_validate_*``,
``_after_*`` and limit hooks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

from ..config import ProtocolConfigReader, TrancheSettings
from ..core.atomic import SnapshotMixin, TransactionProcessor
from ..core.errors import EligibilityError, InsufficientBalanceError, UnauthorizedError
from ..core.ledger import ActivityLedger
from ..core.primitives import (
    MAX_BPS,
    UNLIMITED,
    ActivityKind,
    Clock,
    Role,
    Rounding,
    TrancheKind,
    mul_div,
)
from ..core.token import Token
from ..engine.pipeline import OperationPipeline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationContext:
    """
    Validated inputs of one deposit or withdrawal.

    Built by the validate stage from a single settings snapshot and timestamp
    and passed unchanged to the mutate and post-effect stages.
    """

    caller: str
    receiver: str
    owner: str
    assets: int
    shares: int
    settings: TrancheSettings
    now: int
    balance_before: int = 0
    max_loss_bps: int = MAX_BPS


@dataclass(frozen=True)
class OperationResult:
    """Amounts actually moved: ``assets`` paid or received, ``shares`` minted or burned."""

    assets: int
    shares: int


class TokenizedVault(SnapshotMixin):
    """
    Base class for the senior and subordinate tranches.

    Args:
        address: Account identifier of the vault itself
        shares: Share token issued by this vault
        reader: Protocol configuration reader
        clock: Time source for every time-gated rule
        processor: Transaction processor providing atomic scopes
        ledger: Activity ledger receiving audit records
        management: Governance account
        keeper: Account allowed to report, rebalance and sync (defaults to management)
        emergency_admin: Account allowed to shut down (defaults to management)
    """

    kind: TrancheKind
    _snapshot_fields = ("_depositor_whitelist", "_shutdown", "_roles")
    # Error raised when an amount exceeds the withdraw limit after eligibility passed
    _limit_error = EligibilityError

    def __init__(
        self,
        address: str,
        shares: Token,
        reader: ProtocolConfigReader,
        clock: Clock,
        processor: TransactionProcessor,
        ledger: ActivityLedger,
        management: str,
        keeper: Optional[str] = None,
        emergency_admin: Optional[str] = None,
    ) -> None:
        self.address = address
        self.shares = shares
        self.reader = reader
        self.clock = clock
        self.processor = processor
        self.ledger = ledger
        self.pipeline = OperationPipeline(processor)
        self._roles: Dict[Role, str] = {
            Role.MANAGEMENT: management,
            Role.KEEPER: keeper or management,
            Role.EMERGENCY_ADMIN: emergency_admin or management,
        }
        self._depositor_whitelist: Set[str] = set()
        self._shutdown = False

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(address='{self.address}', "
            f"total_assets={self.total_assets()}, total_supply={self.total_supply()})"
        )

    # Asset side, provided by subclasses

    def total_assets(self) -> int:
        raise NotImplementedError

    def _pull_assets(self, ctx: OperationContext) -> None:
        raise NotImplementedError

    def _push_assets(self, ctx: OperationContext) -> int:
        raise NotImplementedError

    def _deposit_limit(self, receiver: str, settings: TrancheSettings) -> int:
        return 0 if self.is_shutdown else UNLIMITED

    def _withdraw_limit(self, owner: str, settings: TrancheSettings, now: int) -> int:
        return self.convert_to_assets(self.shares.balance_of(owner))

    # Policy hooks, no-ops by default

    def _validate_deposit(self, ctx: OperationContext) -> None:
        pass

    def _after_deposit(self, ctx: OperationContext, result: OperationResult) -> None:
        pass

    def _validate_withdraw(self, ctx: OperationContext) -> None:
        pass

    def _after_withdraw(self, ctx: OperationContext, result: OperationResult) -> None:
        pass

    def _validate_transfer(
        self, sender: str, to: str, amount: int, settings: TrancheSettings, now: int
    ) -> None:
        pass

    def _after_transfer(self, sender: str, to: str, amount: int) -> None:
        pass

    # Read-only views

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def role(self, role: Role) -> str:
        return self._roles[role]

    def total_supply(self) -> int:
        return self.shares.total_supply

    def balance_of(self, account: str) -> int:
        return self.shares.balance_of(account)

    def allowance(self, owner: str, spender: str) -> int:
        return self.shares.allowance(owner, spender)

    def is_depositor_whitelisted(self, depositor: str) -> bool:
        return depositor in self._depositor_whitelist

    def price_per_share(self) -> int:
        """Assets for one whole share (``10 ** decimals`` units), floored."""
        return self.convert_to_assets(10**self.shares.decimals)

    def convert_to_shares(self, assets: int, rounding: Rounding = Rounding.FLOOR) -> int:
        supply = self.shares.total_supply
        if supply == 0:
            return assets
        total = self.total_assets()
        if total == 0:
            return 0
        return mul_div(assets, supply, total, rounding)

    def convert_to_assets(self, shares: int, rounding: Rounding = Rounding.FLOOR) -> int:
        supply = self.shares.total_supply
        if supply == 0:
            return shares
        return mul_div(shares, self.total_assets(), supply, rounding)

    def preview_deposit(self, assets: int) -> int:
        return self.convert_to_shares(assets, Rounding.FLOOR)

    def preview_mint(self, shares: int) -> int:
        return self.convert_to_assets(shares, Rounding.CEIL)

    def preview_withdraw(self, assets: int) -> int:
        return self.convert_to_shares(assets, Rounding.CEIL)

    def preview_redeem(self, shares: int) -> int:
        return self.convert_to_assets(shares, Rounding.FLOOR)

    def available_deposit_limit(self, receiver: str) -> int:
        """Assets ``receiver`` may deposit right now (``UNLIMITED`` when uncapped)."""
        return self._deposit_limit(receiver, self.reader.snapshot())

    def available_withdraw_limit(self, owner: str) -> int:
        """Assets that may leave the vault on behalf of ``owner`` right now."""
        return self._withdraw_limit(owner, self.reader.snapshot(), self.clock.now())

    def max_deposit(self, receiver: str) -> int:
        return self.available_deposit_limit(receiver)

    def max_mint(self, receiver: str) -> int:
        limit = self.available_deposit_limit(receiver)
        if limit == UNLIMITED:
            return UNLIMITED
        return self.convert_to_shares(limit)

    def max_withdraw(self, owner: str) -> int:
        balance_assets = self.convert_to_assets(self.shares.balance_of(owner))
        return min(self.available_withdraw_limit(owner), balance_assets)

    def max_redeem(self, owner: str) -> int:
        balance = self.shares.balance_of(owner)
        limit = self.available_withdraw_limit(owner)
        if limit >= self.convert_to_assets(balance):
            return balance
        return min(balance, self.convert_to_shares(limit))

    # Deposits

    def deposit(self, assets: int, receiver: str, caller: Optional[str] = None) -> int:
        """
        Deposit ``assets`` from ``caller`` and mint shares to ``receiver``.

        Returns:
            int: Shares minted (rounded down)

        Raises:
            EligibilityError: Proxy deposit by a non-whitelisted caller, vault
                shut down, amount above the deposit limit or minting zero shares
        """
        caller = caller or receiver

        def validate() -> OperationContext:
            self._require_positive(assets, "Deposit")
            return self._deposit_context(caller, receiver, assets, self.preview_deposit(assets))

        result = self.pipeline.run(
            f"{self.address}.deposit",
            validate=validate,
            mutate=self._execute_deposit,
            post_effects=(self._after_deposit, self._record_deposit),
        )
        return result.shares

    def mint(self, shares: int, receiver: str, caller: Optional[str] = None) -> int:
        """Mint exactly ``shares`` to ``receiver``; returns assets pulled (rounded up)."""
        caller = caller or receiver

        def validate() -> OperationContext:
            self._require_positive(shares, "Mint")
            return self._deposit_context(caller, receiver, self.preview_mint(shares), shares)

        result = self.pipeline.run(
            f"{self.address}.mint",
            validate=validate,
            mutate=self._execute_deposit,
            post_effects=(self._after_deposit, self._record_deposit),
        )
        return result.assets

    def _deposit_context(
        self, caller: str, receiver: str, assets: int, shares: int
    ) -> OperationContext:
        settings = self.reader.snapshot()
        self._check_depositor(caller, receiver)
        if self.is_shutdown:
            raise EligibilityError(f"{self.address} is shut down; deposits are disabled")
        ctx = OperationContext(
            caller=caller,
            receiver=receiver,
            owner=receiver,
            assets=assets,
            shares=shares,
            settings=settings,
            now=self.clock.now(),
            balance_before=self.shares.balance_of(receiver),
        )
        self._validate_deposit(ctx)
        limit = self._deposit_limit(receiver, settings)
        if assets > limit:
            raise EligibilityError(
                f"Deposit of {assets} into {self.address} exceeds the limit of {limit}"
            )
        if shares == 0 or assets == 0:
            raise EligibilityError(f"Deposit into {self.address} would mint zero shares")
        return ctx

    def _execute_deposit(self, ctx: OperationContext) -> OperationResult:
        self._pull_assets(ctx)
        self.shares.mint(ctx.receiver, ctx.shares)
        return OperationResult(assets=ctx.assets, shares=ctx.shares)

    def _record_deposit(self, ctx: OperationContext, result: OperationResult) -> None:
        self.ledger.record(
            timestamp=ctx.now,
            vault=self.address,
            kind=ActivityKind.DEPOSIT,
            account=ctx.receiver,
            counterparty=ctx.caller,
            assets=result.assets,
            shares=result.shares,
        )
        logger.debug(
            f"{self.address}: {ctx.caller} deposited {result.assets} for "
            f"{result.shares} shares to {ctx.receiver}"
        )

    # Withdrawals

    def withdraw(
        self,
        assets: int,
        receiver: str,
        owner: str,
        caller: Optional[str] = None,
        max_loss_bps: int = 0,
    ) -> int:
        """
        Burn the shares worth ``assets`` from ``owner`` and pay ``receiver``.

        Returns:
            int: Shares burned (rounded up)
        """
        caller = caller or owner

        def validate() -> OperationContext:
            self._require_positive(assets, "Withdraw")
            return self._withdraw_context(
                caller, receiver, owner, assets, self.preview_withdraw(assets), max_loss_bps
            )

        result = self.pipeline.run(
            f"{self.address}.withdraw",
            validate=validate,
            mutate=self._execute_withdraw,
            post_effects=(self._after_withdraw, self._record_withdraw),
        )
        return result.shares

    def redeem(
        self,
        shares: int,
        receiver: str,
        owner: str,
        caller: Optional[str] = None,
        max_loss_bps: int = MAX_BPS,
    ) -> int:
        """
        Burn ``shares`` from ``owner`` and pay their value to ``receiver``.

        Returns:
            int: Assets paid out (rounded down, net of any realized loss)
        """
        caller = caller or owner

        def validate() -> OperationContext:
            self._require_positive(shares, "Redeem")
            return self._withdraw_context(
                caller, receiver, owner, self.preview_redeem(shares), shares, max_loss_bps
            )

        result = self.pipeline.run(
            f"{self.address}.redeem",
            validate=validate,
            mutate=self._execute_withdraw,
            post_effects=(self._after_withdraw, self._record_withdraw),
        )
        return result.assets

    def _withdraw_context(
        self,
        caller: str,
        receiver: str,
        owner: str,
        assets: int,
        shares: int,
        max_loss_bps: int,
    ) -> OperationContext:
        if not 0 <= max_loss_bps <= MAX_BPS:
            raise EligibilityError(f"max_loss_bps must be within 0..{MAX_BPS}, got {max_loss_bps}")
        settings = self.reader.snapshot()
        balance = self.shares.balance_of(owner)
        if shares > balance:
            raise InsufficientBalanceError(
                f"{owner} holds {balance} {self.shares.symbol}, needs {shares}"
            )
        ctx = OperationContext(
            caller=caller,
            receiver=receiver,
            owner=owner,
            assets=assets,
            shares=shares,
            settings=settings,
            now=self.clock.now(),
            balance_before=balance,
            max_loss_bps=max_loss_bps,
        )
        self._validate_withdraw(ctx)
        limit = self._withdraw_limit(owner, settings, ctx.now)
        if assets > limit:
            raise self._limit_error(
                f"Withdrawal of {assets} from {self.address} exceeds the available limit of {limit}"
            )
        if assets == 0:
            raise EligibilityError(f"Redeeming {shares} shares of {self.address} yields zero assets")
        return ctx

    def _execute_withdraw(self, ctx: OperationContext) -> OperationResult:
        if ctx.caller != ctx.owner:
            self.shares.spend_allowance(ctx.owner, ctx.caller, ctx.shares)
        self.shares.burn(ctx.owner, ctx.shares)
        paid = self._push_assets(ctx)
        return OperationResult(assets=paid, shares=ctx.shares)

    def _record_withdraw(self, ctx: OperationContext, result: OperationResult) -> None:
        self.ledger.record(
            timestamp=ctx.now,
            vault=self.address,
            kind=ActivityKind.WITHDRAW,
            account=ctx.owner,
            counterparty=ctx.receiver,
            assets=-result.assets,
            shares=-result.shares,
        )
        logger.debug(
            f"{self.address}: {ctx.owner} redeemed {result.shares} shares for "
            f"{result.assets} to {ctx.receiver}"
        )

    # Share transfers

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        return self._transfer(sender, sender, to, amount)

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        return self._transfer(spender, owner, to, amount)

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        self.shares.approve(owner, spender, amount)
        return True

    def _transfer(self, spender: str, sender: str, to: str, amount: int) -> bool:
        def validate() -> int:
            if amount < 0:
                raise EligibilityError(f"Transfer amount must be non-negative, got {amount}")
            if to == sender:
                raise EligibilityError(f"{sender} cannot transfer {self.shares.symbol} to itself")
            now = self.clock.now()
            self._validate_transfer(sender, to, amount, self.reader.snapshot(), now)
            return now

        def mutate(now: int) -> int:
            self.shares.spend_allowance(sender, spender, amount)
            self.shares.move(sender, to, amount)
            return amount

        def after(now: int, moved: int) -> None:
            self._after_transfer(sender, to, moved)
            self.ledger.record(
                timestamp=now,
                vault=self.address,
                kind=ActivityKind.TRANSFER,
                account=sender,
                counterparty=to,
                shares=moved,
            )

        self.pipeline.run(
            f"{self.address}.transfer", validate=validate, mutate=mutate, post_effects=(after,)
        )
        return True

    # Governance

    def set_depositor_whitelist(self, caller: str, depositor: str, allowed: bool) -> None:
        """Allow or revoke ``depositor`` depositing on behalf of other accounts."""
        self._require_role(caller, Role.MANAGEMENT)
        with self.processor.atomic(f"{self.address}.set_depositor_whitelist"):
            if allowed:
                self._depositor_whitelist.add(depositor)
            else:
                self._depositor_whitelist.discard(depositor)
        logger.info(f"{self.address}: depositor whitelist {depositor} -> {allowed}")

    def set_role(self, caller: str, role: Role, account: str) -> None:
        self._require_role(caller, Role.MANAGEMENT)
        with self.processor.atomic(f"{self.address}.set_role"):
            self._roles[Role(role)] = account
        logger.info(f"{self.address}: {Role(role).value} set to {account}")

    def set_keeper(self, caller: str, keeper: str) -> None:
        self.set_role(caller, Role.KEEPER, keeper)

    def set_emergency_admin(self, caller: str, emergency_admin: str) -> None:
        self.set_role(caller, Role.EMERGENCY_ADMIN, emergency_admin)

    def shutdown(self, caller: str) -> None:
        """Stop deposits permanently and open exits."""
        self._require_role(caller, Role.EMERGENCY_ADMIN)
        with self.processor.atomic(f"{self.address}.shutdown"):
            if self._shutdown:
                return
            self._shutdown = True
            self.ledger.record(
                timestamp=self.clock.now(),
                vault=self.address,
                kind=ActivityKind.SHUTDOWN,
                account=caller,
            )
        logger.info(f"{self.address}: shut down by {caller}")

    # Transaction processor participation

    def participants(self) -> List[Any]:
        return [self, self.shares]

    # Helpers

    def _require_role(self, caller: str, role: Role) -> None:
        if caller == self._roles[Role.MANAGEMENT] or caller == self._roles[role]:
            return
        raise UnauthorizedError(f"{caller} is not {role.value} of {self.address}")

    def _check_depositor(self, caller: str, receiver: str) -> None:
        if caller != receiver and caller not in self._depositor_whitelist:
            raise EligibilityError(
                f"{caller} may not deposit into {self.address} on behalf of {receiver}"
            )

    @staticmethod
    def _require_positive(amount: int, operation: str) -> None:
        if amount <= 0:
            raise EligibilityError(f"{operation} amount must be positive, got {amount}")
