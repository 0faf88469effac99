# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Tabular views of a tranche system.

Every function returns a pandas DataFrame built from live state; nothing is
cached. Amounts are integers in the smallest asset unit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pandas as pd

if TYPE_CHECKING:
    from .system import TrancheSystem
    from .vault import SubordinateTranche

POSITION_COLUMNS = ["account", "senior_shares", "senior_value", "subordinate_shares", "subordinate_value"]
COOLDOWN_COLUMNS = ["account", "balance", "cooldown_end", "window_end", "shares", "phase", "locked_until"]


def positions_frame(system: "TrancheSystem") -> pd.DataFrame:
    """
    One row per share holder of either tranche.

    Values are in base-asset units; subordinate values are looked through to
    the senior share price.
    """
    senior = system.senior
    subordinate = system.subordinate
    senior_holders = senior.shares.holders()
    subordinate_holders = subordinate.shares.holders()
    accounts = sorted(set(senior_holders) | set(subordinate_holders))
    if not accounts:
        empty = pd.DataFrame(columns=POSITION_COLUMNS).astype(
            {c: "int64" for c in POSITION_COLUMNS[1:]}
        )
        return empty.set_index("account")

    rows = []
    for account in accounts:
        senior_shares = senior_holders.get(account, 0)
        subordinate_shares = subordinate_holders.get(account, 0)
        rows.append(
            {
                "account": account,
                "senior_shares": senior_shares,
                "senior_value": senior.convert_to_assets(senior_shares),
                "subordinate_shares": subordinate_shares,
                "subordinate_value": senior.convert_to_assets(
                    subordinate.convert_to_assets(subordinate_shares)
                ),
            }
        )
    return pd.DataFrame(rows, columns=POSITION_COLUMNS).set_index("account")


def tranche_summary(system: "TrancheSystem") -> pd.DataFrame:
    """Headline figures per tranche, indexed by tranche kind."""
    senior = system.senior
    subordinate = system.subordinate
    settings = system.reader.snapshot()
    rows = [
        {
            "tranche": senior.kind.value,
            "address": senior.address,
            "total_assets": senior.total_assets(),
            "total_supply": senior.total_supply(),
            "idle": senior.idle_assets(),
            "deployed": senior.deployed_assets(),
            "holders": len(senior.shares.holders()),
            "shutdown": senior.is_shutdown,
        },
        {
            "tranche": subordinate.kind.value,
            "address": subordinate.address,
            "total_assets": subordinate.total_assets(),
            "total_supply": subordinate.total_supply(),
            "idle": subordinate.total_assets(),
            "deployed": 0,
            "holders": len(subordinate.shares.holders()),
            "shutdown": subordinate.is_shutdown,
        },
    ]
    frame = pd.DataFrame(rows).set_index("tranche")
    frame.attrs["market_debt"] = system.market.current_debt()
    frame.attrs["subordination_ratio_bps"] = subordinate.subordination_ratio_bps()
    frame.attrs["max_subordination_ratio_bps"] = settings.max_subordination_ratio
    frame.attrs["profit_share_bps"] = senior.performance_fee_bps
    return frame


def cooldown_frame(subordinate: "SubordinateTranche") -> pd.DataFrame:
    """Lock and cooldown state for every subordinate share holder."""
    rows = []
    for account, balance in sorted(subordinate.shares.holders().items()):
        cooldown_end, window_end, shares = subordinate.get_cooldown_status(account)
        rows.append(
            {
                "account": account,
                "balance": balance,
                "cooldown_end": cooldown_end,
                "window_end": window_end,
                "shares": shares,
                "phase": subordinate.cooldown_phase(account).value,
                "locked_until": subordinate.locked_until(account),
            }
        )
    return pd.DataFrame(rows, columns=COOLDOWN_COLUMNS).set_index("account")
