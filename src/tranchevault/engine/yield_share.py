# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Yield-Share Synchronizer.

Reads the configured profit-share fraction and hands it to the senior tranche
as its performance fee. The fee is paid by minting new senior shares to the
subordinate tranche on the next report, which dilutes senior holders by
exactly the fee amount.
"""

from __future__ import annotations

import logging

from ..config import ProtocolConfigReader
from ..core.errors import ConfigurationError
from ..core.primitives import MAX_BPS, ConfigKey, Rounding, apply_bps, mul_div

logger = logging.getLogger(__name__)


class YieldShareSynchronizer:
    """
    Validate and apply the profit-share fraction.

    Example:
        ```python
        synchronizer = YieldShareSynchronizer(reader)
        fee_bps = synchronizer.read_profit_share()  # raises on > 10_000
        ```
    """

    def __init__(self, reader: ProtocolConfigReader) -> None:
        self.reader = reader

    def read_profit_share(self) -> int:
        """
        Read the raw profit-share fraction.

        Raises:
            ConfigurationError: If the value is above ``MAX_BPS`` or negative
        """
        raw = self.reader.raw(ConfigKey.PROFIT_SHARE)
        value = int(raw) if raw is not None else 0
        if value < 0 or value > MAX_BPS:
            raise ConfigurationError(
                f"Profit share must be within 0..{MAX_BPS} bps, got {value}"
            )
        return value

    @staticmethod
    def fee_assets(profit: int, fee_bps: int) -> int:
        """Portion of ``profit`` routed to the subordinate tranche."""
        if profit <= 0 or fee_bps <= 0:
            return 0
        return apply_bps(profit, fee_bps)

    @staticmethod
    def fee_shares(fee: int, total_assets_after: int, total_supply: int) -> int:
        """
        Shares to mint so that they are worth ``fee`` after issuance.

        Solves ``s * T / (S + s) = fee`` for ``s`` with ``T`` the post-profit
        total assets and ``S`` the pre-mint supply, rounding down.
        """
        if fee <= 0:
            return 0
        if total_supply == 0:
            return fee
        remaining = total_assets_after - fee
        if remaining <= 0:
            return fee
        return mul_div(fee, total_supply, remaining, Rounding.FLOOR)
