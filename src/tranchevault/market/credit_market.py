# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
External credit market collaborator.

The tranche engine only needs four calls from the lending market it deploys
into. ``InMemoryCreditMarket`` is a minimal pool with those calls plus the
borrower-side and loss hooks needed to drive it: there is no interest rate
curve or matching engine, interest and losses are applied explicitly.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol

from ..core.atomic import SnapshotMixin
from ..core.errors import LiquidityError
from ..core.token import Token

logger = logging.getLogger(__name__)


class CreditMarket(Protocol):
    """Lending market interface consumed by the deployment manager."""

    def supply(self, amount: int, supplier: str) -> int: ...

    def withdraw(self, amount: int, receiver: str) -> int: ...

    def current_debt(self) -> int: ...

    def total_supply_assets(self) -> int: ...

    def supplied_assets(self, supplier: str) -> int: ...


class InMemoryCreditMarket(SnapshotMixin):
    """
    Single-asset lending pool.

    Supplied assets are held by ``address`` on the asset token and tracked as
    one position per supplier. Borrowing moves them out to the borrower;
    repayment moves them back. Interest accrual grows debt and every supplier
    position pro rata; an external loss shrinks them the same way.

    Attributes:
        asset: Base asset token
        address: Account holding the pool's liquidity
    """

    _snapshot_fields = ("_positions", "_total_borrow_assets", "_borrowers")

    def __init__(self, asset: Token, address: str = "credit-market") -> None:
        self.asset = asset
        self.address = address
        self._positions: Dict[str, int] = {}
        self._total_borrow_assets = 0
        self._borrowers: Dict[str, int] = {}

    def __repr__(self) -> str:
        return (
            f"InMemoryCreditMarket(supply={self.total_supply_assets()}, "
            f"debt={self._total_borrow_assets})"
        )

    # Supplier side

    def supply(self, amount: int, supplier: str) -> int:
        """Pull ``amount`` from ``supplier`` and credit it to their position."""
        if amount <= 0:
            return 0
        self.asset.move(supplier, self.address, amount)
        self._positions[supplier] = self.supplied_assets(supplier) + amount
        logger.debug(f"{supplier} supplied {amount}")
        return amount

    def withdraw(self, amount: int, receiver: str) -> int:
        """Return up to ``amount`` of ``receiver``'s position, limited by free liquidity."""
        freed = min(max(amount, 0), self.liquidity(), self.supplied_assets(receiver))
        if freed <= 0:
            return 0
        self.asset.move(self.address, receiver, freed)
        self._adjust_position(receiver, -freed)
        logger.debug(f"Withdrew {freed} of {amount} requested to {receiver}")
        return freed

    def current_debt(self) -> int:
        return self._total_borrow_assets

    def total_supply_assets(self) -> int:
        return sum(self._positions.values())

    def supplied_assets(self, supplier: str) -> int:
        """Assets currently owed to ``supplier``, including its share of interest and losses."""
        return self._positions.get(supplier, 0)

    def suppliers(self) -> Dict[str, int]:
        return dict(self._positions)

    def liquidity(self) -> int:
        return max(0, self.total_supply_assets() - self._total_borrow_assets)

    def utilization_bps(self) -> int:
        supplied = self.total_supply_assets()
        if supplied == 0:
            return 0
        return self._total_borrow_assets * 10_000 // supplied

    def _adjust_position(self, supplier: str, delta: int) -> None:
        remaining = self.supplied_assets(supplier) + delta
        if remaining:
            self._positions[supplier] = remaining
        else:
            self._positions.pop(supplier, None)

    def _pro_rata(self, amount: int) -> Dict[str, int]:
        """
        Split ``amount`` across supplier positions in proportion to their size.

        Portions are floored; the rounding remainder goes to the largest
        position so the portions always sum to ``amount``.
        """
        total = self.total_supply_assets()
        if total == 0:
            return {}
        portions = {
            supplier: amount * position // total for supplier, position in self._positions.items()
        }
        remainder = amount - sum(portions.values())
        if remainder:
            largest = max(self._positions, key=lambda s: (self._positions[s], s))
            portions[largest] += remainder
        return portions

    # Borrower side

    def debt_of(self, borrower: str) -> int:
        return self._borrowers.get(borrower, 0)

    def borrow(self, borrower: str, amount: int) -> None:
        if amount <= 0:
            raise ValueError(f"Borrow amount must be positive, got {amount}")
        if amount > self.liquidity():
            raise LiquidityError(
                f"Market liquidity {self.liquidity()} is below borrow of {amount}"
            )
        self.asset.move(self.address, borrower, amount)
        self._total_borrow_assets += amount
        self._borrowers[borrower] = self.debt_of(borrower) + amount

    def repay(self, borrower: str, amount: int) -> int:
        """Repay up to the borrower's debt and return the amount applied."""
        applied = min(max(amount, 0), self.debt_of(borrower))
        if applied == 0:
            return 0
        self.asset.move(borrower, self.address, applied)
        self._total_borrow_assets -= applied
        remaining = self.debt_of(borrower) - applied
        if remaining:
            self._borrowers[borrower] = remaining
        else:
            del self._borrowers[borrower]
        return applied

    def accrue_interest(self, amount: int, borrower: Optional[str] = None) -> None:
        """
        Book ``amount`` of interest owed by ``borrower`` (or pro rata to the
        pool when None). Supplier positions grow by the same amount in total,
        split pro rata.
        """
        if amount <= 0:
            return
        if borrower is not None:
            self._borrowers[borrower] = self.debt_of(borrower) + amount
        self._total_borrow_assets += amount
        for supplier, portion in self._pro_rata(amount).items():
            self._adjust_position(supplier, portion)
        logger.debug(f"Accrued {amount} of interest")

    def apply_external_loss(self, amount: int, borrower: Optional[str] = None) -> int:
        """
        Write off bad debt.

        The loss is capped at outstanding debt (or the borrower's debt) and
        reduces debt and every supplier position pro rata.

        Returns:
            int: The loss actually written off
        """
        ceiling = self.debt_of(borrower) if borrower is not None else self._total_borrow_assets
        loss = min(max(amount, 0), ceiling)
        if loss == 0:
            return 0
        if borrower is not None:
            remaining = self.debt_of(borrower) - loss
            if remaining:
                self._borrowers[borrower] = remaining
            else:
                del self._borrowers[borrower]
        self._total_borrow_assets -= loss
        for supplier, portion in self._pro_rata(loss).items():
            self._adjust_position(supplier, -min(portion, self.supplied_assets(supplier)))
        logger.info(f"Wrote off {loss} of market debt")
        return loss
