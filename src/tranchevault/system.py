# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
System assembly.

``build_tranche_system()`` wires the base asset, credit market,
configuration, clock, transaction processor, activity ledger and both
tranches together and registers every state holder with the processor so
that each operation commits or rolls back as one unit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

from .config import InMemoryConfigSource, ProtocolConfigReader
from .config.source import ConfigurationSource
from .core.atomic import TransactionProcessor
from .core.ledger import ActivityLedger, ActivityQueries
from .core.primitives import Clock, ConfigKey, ManualClock
from .core.token import Token
from .market import InMemoryCreditMarket
from .vault import SeniorTranche, SubordinateTranche

logger = logging.getLogger(__name__)

SENIOR_ADDRESS = "senior-tranche"
SUBORDINATE_ADDRESS = "subordinate-tranche"
MARKET_ADDRESS = "credit-market"


@dataclass
class TrancheSystem:
    """
    A fully wired two-tranche deployment.

    Attributes:
        asset: Base asset token
        market: Credit market the senior tranche deploys into
        config: Configuration source read by both tranches
        reader: Reader resolving ``config`` into settings snapshots
        clock: Time source shared by every component
        processor: Transaction processor holding all participants
        ledger: Activity ledger shared by both tranches
        senior: Senior tranche
        subordinate: Subordinate tranche
    """

    asset: Token
    market: InMemoryCreditMarket
    config: ConfigurationSource
    reader: ProtocolConfigReader
    clock: Clock
    processor: TransactionProcessor
    ledger: ActivityLedger
    senior: SeniorTranche
    subordinate: SubordinateTranche

    @property
    def queries(self) -> ActivityQueries:
        return ActivityQueries(self.ledger)

    def fund(self, account: str, amount: int) -> None:
        """Mint base asset to ``account`` (test and simulation helper)."""
        self.asset.mint(account, amount)


def build_tranche_system(
    config: Optional[Union[ConfigurationSource, Dict[ConfigKey, int]]] = None,
    clock: Optional[Clock] = None,
    management: str = "management",
    keeper: Optional[str] = None,
    emergency_admin: Optional[str] = None,
    asset_symbol: str = "USDC",
    decimals: int = 6,
) -> TrancheSystem:
    """
    Build a two-tranche system over an in-memory credit market.

    Args:
        config: Configuration source, or a mapping of overrides for a fresh
            ``InMemoryConfigSource``
        clock: Time source (a new ``ManualClock`` when omitted)
        management: Governance account on both tranches
        keeper: Keeper account (defaults to management)
        emergency_admin: Emergency admin account (defaults to management)
        asset_symbol: Symbol of the base asset
        decimals: Decimals shared by the base asset and both share tokens

    Returns:
        TrancheSystem: The wired components
    """
    if config is None or isinstance(config, dict):
        config = InMemoryConfigSource(config)
    clock = clock or ManualClock()
    reader = ProtocolConfigReader(config)
    processor = TransactionProcessor()
    ledger = ActivityLedger()

    asset = Token(asset_symbol, decimals=decimals)
    market = InMemoryCreditMarket(asset, address=MARKET_ADDRESS)

    senior = SeniorTranche(
        SENIOR_ADDRESS,
        asset,
        Token(f"s{asset_symbol}", decimals=decimals),
        market,
        reader,
        clock,
        processor,
        ledger,
        management,
        keeper=keeper,
        emergency_admin=emergency_admin,
    )
    subordinate = SubordinateTranche(
        SUBORDINATE_ADDRESS,
        senior,
        Token(f"j{asset_symbol}", decimals=decimals),
        reader,
        clock,
        processor,
        ledger,
        management,
        keeper=keeper,
        emergency_admin=emergency_admin,
    )

    processor.register(asset, market, ledger, *senior.participants(), *subordinate.participants())
    senior.set_subordinate(management, subordinate.address)

    logger.info(
        f"Built tranche system over {asset_symbol}: {senior.address} / {subordinate.address}"
    )
    return TrancheSystem(
        asset=asset,
        market=market,
        config=config,
        reader=reader,
        clock=clock,
        processor=processor,
        ledger=ledger,
        senior=senior,
        subordinate=subordinate,
    )
