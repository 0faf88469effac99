# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Integer balance ledger.

``Token`` backs both the base asset and each tranche's shares. It enforces
only bookkeeping rules (no negative balances, allowance accounting); policy
such as commitment or lock restrictions lives in the tranches that wrap it.
"""

from __future__ import annotations

import logging
from typing import Dict, Tuple

from .atomic import SnapshotMixin
from .errors import InsufficientAllowanceError, InsufficientBalanceError
from .primitives import UNLIMITED

logger = logging.getLogger(__name__)


class Token(SnapshotMixin):
    """
    Fungible balance ledger with allowances.

    Invariant: ``sum(balances.values()) == total_supply`` after every call.
    Accounts whose balance reaches zero are dropped from the mapping.
    """

    _snapshot_fields = ("_balances", "_allowances", "_total_supply")

    def __init__(self, symbol: str, decimals: int = 6) -> None:
        self.symbol = symbol
        self.decimals = decimals
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._total_supply = 0

    def __repr__(self) -> str:
        return f"Token(symbol='{self.symbol}', total_supply={self._total_supply})"

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def holders(self) -> Dict[str, int]:
        """Return a copy of all non-zero balances."""
        return dict(self._balances)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def mint(self, account: str, amount: int) -> None:
        _require_non_negative(amount)
        if amount == 0:
            return
        self._balances[account] = self.balance_of(account) + amount
        self._total_supply += amount

    def burn(self, account: str, amount: int) -> None:
        _require_non_negative(amount)
        if amount == 0:
            return
        self._debit(account, amount)
        self._total_supply -= amount

    def move(self, sender: str, receiver: str, amount: int) -> None:
        """Move ``amount`` from ``sender`` to ``receiver`` without any policy checks."""
        _require_non_negative(amount)
        if amount == 0:
            return
        self._debit(sender, amount)
        self._balances[receiver] = self.balance_of(receiver) + amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        _require_non_negative(amount)
        if amount == 0:
            self._allowances.pop((owner, spender), None)
        else:
            self._allowances[(owner, spender)] = amount

    def spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        """Consume allowance; an ``UNLIMITED`` approval is never decremented."""
        if owner == spender:
            return
        current = self.allowance(owner, spender)
        if current == UNLIMITED:
            return
        if current < amount:
            raise InsufficientAllowanceError(
                f"{self.symbol}: allowance {current} for {spender} on {owner} is below {amount}"
            )
        self.approve(owner, spender, current - amount)

    def _debit(self, account: str, amount: int) -> None:
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientBalanceError(
                f"{self.symbol}: balance {balance} of {account} is below {amount}"
            )
        remaining = balance - amount
        if remaining:
            self._balances[account] = remaining
        else:
            del self._balances[account]


def _require_non_negative(amount: int) -> None:
    if amount < 0:
        raise ValueError(f"Token amounts must be non-negative, got {amount}")
