# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Deployment Manager.

Keeps the senior tranche's deployed capital near
``total_assets * deployment_ratio / 10_000``. It only acts when asked
(deposit, withdrawal, report or an explicit rebalance); lowering the ratio
never triggers an immediate withdrawal on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..core.primitives import apply_bps
from ..core.token import Token

if TYPE_CHECKING:
    from ..market import CreditMarket

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RebalancePlan:
    """
    Intended move of capital.

    Attributes:
        target: Desired deployed amount
        deployed: Deployed amount before the move
        idle: Idle amount before the move
        deploy: Amount to supply to the market (0 if none)
        recall: Amount to withdraw from the market (0 if none)
    """

    target: int
    deployed: int
    idle: int
    deploy: int = 0
    recall: int = 0

    @property
    def is_noop(self) -> bool:
        return self.deploy == 0 and self.recall == 0


@dataclass(frozen=True)
class RebalanceResult:
    plan: RebalancePlan
    deployed: int = 0
    recalled: int = 0


class DeploymentManager:
    """
    Moves idle base asset between the senior tranche and the credit market.

    Args:
        market: Credit market collaborator
        asset: Base asset token
        holder: Address of the senior tranche
    """

    def __init__(self, market: "CreditMarket", asset: Token, holder: str) -> None:
        self.market = market
        self.asset = asset
        self.holder = holder

    def idle(self) -> int:
        return self.asset.balance_of(self.holder)

    def deployed(self) -> int:
        """The holder's own supply position; other suppliers are not counted."""
        return self.market.supplied_assets(self.holder)

    def recoverable(self) -> int:
        """Deployed assets the market can return right now."""
        liquidity = self.market.total_supply_assets() - self.market.current_debt()
        return max(0, min(self.deployed(), liquidity))

    def plan(self, total_assets: int, ratio_bps: int) -> RebalancePlan:
        idle = self.idle()
        deployed = self.deployed()
        target = apply_bps(total_assets, ratio_bps)
        if deployed < target:
            return RebalancePlan(
                target=target, deployed=deployed, idle=idle, deploy=min(target - deployed, idle)
            )
        if deployed > target:
            return RebalancePlan(
                target=target,
                deployed=deployed,
                idle=idle,
                recall=min(deployed - target, self.recoverable()),
            )
        return RebalancePlan(target=target, deployed=deployed, idle=idle)

    def rebalance(self, total_assets: int, ratio_bps: int) -> RebalanceResult:
        """
        Move capital toward the target ratio.

        Args:
            total_assets: Senior tranche total assets used for the target
            ratio_bps: Deployment ratio from the settings snapshot

        Returns:
            RebalanceResult with the amounts actually moved
        """
        plan = self.plan(total_assets, ratio_bps)
        if plan.is_noop:
            logger.debug(f"Deployment at target {plan.target}; nothing to move")
            return RebalanceResult(plan=plan)

        if plan.deploy:
            supplied = self.market.supply(plan.deploy, self.holder)
            logger.debug(f"Deployed {supplied} toward target {plan.target}")
            return RebalanceResult(plan=plan, deployed=supplied)

        recalled = self.market.withdraw(plan.recall, self.holder)
        logger.debug(f"Recalled {recalled} toward target {plan.target}")
        return RebalanceResult(plan=plan, recalled=recalled)

    def free(self, amount: int) -> int:
        """Withdraw up to ``amount`` from the market and return what came back."""
        if amount <= 0:
            return 0
        return self.market.withdraw(amount, self.holder)
