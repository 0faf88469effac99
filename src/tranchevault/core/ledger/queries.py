# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Query layer over the activity ledger.

All methods return pandas objects built from ``ActivityLedger.to_dataframe()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import pandas as pd

from ..primitives import ActivityKind

if TYPE_CHECKING:
    from .ledger import ActivityLedger

# Kinds that change a holder's share balance through the vault (not transfers)
SHARE_FLOW_KINDS = [
    ActivityKind.DEPOSIT.value,
    ActivityKind.WITHDRAW.value,
    ActivityKind.MINT_FEE.value,
    ActivityKind.LOSS_BURN.value,
]


class ActivityQueries:
    """
    Aggregations over tranche activity.

    Example:
        ```python
        queries = ActivityQueries(system.ledger)
        queries.net_shares_by_account("senior")
        queries.report_history("senior")
        ```
    """

    def __init__(self, ledger: "ActivityLedger") -> None:
        self.ledger = ledger

    def _frame(self, vault: Optional[str] = None) -> pd.DataFrame:
        df = self.ledger.to_dataframe()
        if vault is not None:
            df = df[df["vault"] == vault]
        return df

    def flows_by_kind(self, vault: Optional[str] = None) -> pd.DataFrame:
        """Total assets and shares per activity kind."""
        df = self._frame(vault)
        return (
            df.groupby("kind", observed=True)[["assets", "shares"]]
            .sum()
            .astype("int64")
        )

    def net_shares_by_account(self, vault: str) -> pd.Series:
        """
        Net shares created minus destroyed per account through vault flows.

        Transfers are excluded; the result reconciles to the share token only
        when no transfers occurred.
        """
        df = self._frame(vault)
        df = df[df["kind"].isin(SHARE_FLOW_KINDS)]
        if df.empty:
            return pd.Series(dtype="int64", name="shares")
        return df.groupby("account")["shares"].sum().astype("int64").rename("shares")

    def net_assets_by_account(self, vault: str) -> pd.Series:
        """Assets deposited minus assets withdrawn per account."""
        df = self._frame(vault)
        df = df[df["kind"].isin([ActivityKind.DEPOSIT.value, ActivityKind.WITHDRAW.value])]
        if df.empty:
            return pd.Series(dtype="int64", name="assets")
        return df.groupby("account")["assets"].sum().astype("int64").rename("assets")

    def report_history(self, vault: str) -> pd.DataFrame:
        """
        Realised profit and loss per report.

        Returns:
            DataFrame indexed by report timestamp with ``profit`` and ``loss``
            columns (both non-negative).
        """
        df = self._frame(vault)
        df = df[df["kind"] == ActivityKind.REPORT.value]
        history = pd.DataFrame(
            {
                "profit": df["assets"].clip(lower=0).astype("int64"),
                "loss": (-df["assets"]).clip(lower=0).astype("int64"),
            }
        )
        history.index = pd.DatetimeIndex(df["timestamp"], name="timestamp")
        return history

    def total_burned_shares(self, vault: str) -> int:
        """Shares destroyed by loss absorption (positive number)."""
        df = self._frame(vault)
        burned = df.loc[df["kind"] == ActivityKind.LOSS_BURN.value, "shares"].sum()
        return int(-burned)

    def total_fee_shares(self, vault: str) -> int:
        """Shares minted as profit share."""
        df = self._frame(vault)
        return int(df.loc[df["kind"] == ActivityKind.MINT_FEE.value, "shares"].sum())

    def daily_flows(self, vault: str) -> pd.DataFrame:
        """Deposits and withdrawals in assets, summed per calendar day (UTC)."""
        df = self._frame(vault)
        df = df[df["kind"].isin([ActivityKind.DEPOSIT.value, ActivityKind.WITHDRAW.value])]
        if df.empty:
            return pd.DataFrame(columns=["deposits", "withdrawals"], dtype="int64")
        day = df["timestamp"].dt.floor("D")
        grouped = pd.DataFrame(
            {
                "deposits": df["assets"].clip(lower=0),
                "withdrawals": (-df["assets"]).clip(lower=0),
                "day": day,
            }
        ).groupby("day")[["deposits", "withdrawals"]].sum()
        return grouped.astype("int64")
