# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Progressive activity ledger.

The ledger owns every ``ActivityRecord`` emitted by the tranches and
materializes a pandas DataFrame on demand. It participates in the
transaction processor like any other state holder: records appended during
a failed operation are discarded on rollback.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import pandas as pd

from ..primitives import ActivityKind, enum_to_string
from .records import ActivityRecord

logger = logging.getLogger(__name__)

LEDGER_COLUMNS = [
    "record_id",
    "timestamp",
    "vault",
    "kind",
    "account",
    "counterparty",
    "assets",
    "shares",
    "note",
]


class ActivityLedger:
    """
    Append-only ledger of tranche activity.

    Example:
        ```python
        ledger = ActivityLedger()
        ledger.record(
            timestamp=clock.now(),
            vault="senior",
            kind=ActivityKind.DEPOSIT,
            account="alice",
            assets=1_000,
            shares=1_000,
        )
        df = ledger.to_dataframe()
        ```
    """

    def __init__(self) -> None:
        self.records: List[ActivityRecord] = []
        self._current_frame: Optional[pd.DataFrame] = None
        self._dirty = False

    def __len__(self) -> int:
        return len(self.records)

    def add(self, record: ActivityRecord) -> None:
        self.records.append(record)
        self._dirty = True

    def record(
        self,
        *,
        timestamp: int,
        vault: str,
        kind: ActivityKind,
        assets: int = 0,
        shares: int = 0,
        account: Optional[str] = None,
        counterparty: Optional[str] = None,
        note: str = "",
    ) -> ActivityRecord:
        """Build, append and return a record."""
        entry = ActivityRecord(
            timestamp=timestamp,
            vault=vault,
            kind=kind,
            assets=assets,
            shares=shares,
            account=account,
            counterparty=counterparty,
            note=note,
        )
        self.add(entry)
        return entry

    def to_dataframe(self) -> pd.DataFrame:
        """
        Get the ledger as a DataFrame, rebuilding only when new records arrived.

        Returns:
            DataFrame with one row per record, ``timestamp`` as UTC datetimes and
            ``kind`` as a categorical of ``ActivityKind`` values.
        """
        if self._current_frame is None or self._dirty:
            self._current_frame = self._to_dataframe()
            self._dirty = False
        return self._current_frame

    def _to_dataframe(self) -> pd.DataFrame:
        if not self.records:
            return self._empty_frame()

        frame = pd.DataFrame(
            {
                "record_id": [r.record_id for r in self.records],
                "timestamp": pd.to_datetime(
                    [r.timestamp for r in self.records], unit="s", utc=True
                ),
                "vault": [r.vault for r in self.records],
                "kind": [enum_to_string(r.kind) for r in self.records],
                "account": [r.account for r in self.records],
                "counterparty": [r.counterparty for r in self.records],
                "assets": [r.assets for r in self.records],
                "shares": [r.shares for r in self.records],
                "note": [r.note for r in self.records],
            },
            columns=LEDGER_COLUMNS,
        )
        frame["kind"] = pd.Categorical(
            frame["kind"], categories=[k.value for k in ActivityKind]
        )
        logger.debug(f"Materialized activity ledger with {len(frame)} records")
        return frame

    @staticmethod
    def _empty_frame() -> pd.DataFrame:
        frame = pd.DataFrame(columns=LEDGER_COLUMNS)
        frame["assets"] = frame["assets"].astype("int64")
        frame["shares"] = frame["shares"].astype("int64")
        frame["timestamp"] = pd.to_datetime(frame["timestamp"], utc=True)
        frame["kind"] = pd.Categorical(
            frame["kind"], categories=[k.value for k in ActivityKind]
        )
        return frame

    # Transaction processor participation

    def snapshot(self) -> int:
        return len(self.records)

    def restore(self, state: int) -> None:
        if len(self.records) > state:
            discarded = len(self.records) - state
            del self.records[state:]
            self._dirty = True
            logger.debug(f"Discarded {discarded} uncommitted activity records")
