# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Loss Absorption Engine.

On a realized loss the senior tranche burns senior shares held by the
subordinate tranche, valued at the pre-loss share price, so that senior
depositors keep their share price until the subordinate buffer is gone.

Rules:
1. ``shares_to_burn = ceil(loss * senior_supply / senior_total_assets_before)``
2. Burn ``min(shares_to_burn, subordinate_balance)`` from the subordinate
   tranche only.
3. Any loss beyond the subordinate balance is left to the ordinary share
   price; no second-order correction.

The burn never raises for an oversized loss; it clamps and logs so a report
can always complete.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.primitives import Rounding, mul_div
from ..core.token import Token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LossAbsorption:
    """
    Outcome of one absorption.

    Attributes:
        loss: Realized loss in senior asset units
        shares_to_burn: Shares the loss is worth at the pre-loss price
        shares_burned: Shares actually burned from the absorber
        uncovered_loss: Loss (asset units) that falls through to all senior holders
    """

    loss: int
    shares_to_burn: int
    shares_burned: int
    uncovered_loss: int

    @property
    def fully_absorbed(self) -> bool:
        return self.shares_burned == self.shares_to_burn


class LossAbsorptionEngine:
    """
    Burns the subordinate tranche's senior shares to cover losses.

    Args:
        shares: The senior share token
        absorber: Address of the subordinate tranche (the only account burned)
    """

    def __init__(self, shares: Token, absorber: str) -> None:
        self.shares = shares
        self.absorber = absorber

    def plan(self, loss: int, total_assets_before: int) -> LossAbsorption:
        """Compute the burn for ``loss`` without touching balances."""
        supply = self.shares.total_supply
        if loss <= 0 or supply == 0 or total_assets_before <= 0:
            return LossAbsorption(loss=max(loss, 0), shares_to_burn=0, shares_burned=0, uncovered_loss=max(loss, 0))

        shares_to_burn = mul_div(loss, supply, total_assets_before, Rounding.CEIL)
        available = self.shares.balance_of(self.absorber)
        shares_burned = min(shares_to_burn, available)

        covered = mul_div(shares_burned, total_assets_before, supply, Rounding.FLOOR)
        uncovered = max(0, loss - covered)
        return LossAbsorption(
            loss=loss,
            shares_to_burn=shares_to_burn,
            shares_burned=shares_burned,
            uncovered_loss=uncovered,
        )

    def absorb(self, loss: int, total_assets_before: int) -> LossAbsorption:
        """
        Burn the planned shares from the absorber.

        Args:
            loss: Realized loss in asset units
            total_assets_before: Senior total assets before the loss is booked

        Returns:
            LossAbsorption describing what was burned
        """
        result = self.plan(loss, total_assets_before)
        if result.shares_to_burn > result.shares_burned:
            logger.warning(
                f"Loss of {loss} needs {result.shares_to_burn} shares but "
                f"{self.absorber} holds {result.shares_burned}; "
                f"{result.uncovered_loss} falls through to senior holders"
            )
        if result.shares_burned:
            self.shares.burn(self.absorber, result.shares_burned)
            logger.info(
                f"Burned {result.shares_burned} {self.shares.symbol} from {self.absorber} "
                f"to absorb loss of {loss}"
            )
        self._check_supply()
        return result

    def _check_supply(self) -> None:
        held = sum(self.shares.holders().values())
        if held != self.shares.total_supply:
            raise RuntimeError(
                f"{self.shares.symbol} balances sum to {held} but total supply is "
                f"{self.shares.total_supply}"
            )
