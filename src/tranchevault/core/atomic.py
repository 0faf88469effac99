# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
All-or-nothing execution scope.

The engine is a deterministic state machine driven one operation at a time.
Every public state-changing call runs inside ``TransactionProcessor.atomic()``:
participants (tokens, market, tranches, activity ledger) are snapshotted on
entry to the outermost scope and restored if any exception escapes it.
Nested scopes join the outer one, so a subordinate deposit that moves senior
shares commits or rolls back as a single unit.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, List, Protocol, Tuple

logger = logging.getLogger(__name__)


class Participant(Protocol):
    """State holder that can be captured and restored."""

    def snapshot(self) -> Any: ...

    def restore(self, state: Any) -> None: ...


class SnapshotMixin:
    """
    Snapshot support for objects whose mutable state lives in a fixed set of
    attributes. Subclasses list them in ``_snapshot_fields``.
    """

    _snapshot_fields: Tuple[str, ...] = ()

    def snapshot(self) -> dict:
        return {name: copy.deepcopy(getattr(self, name)) for name in self._snapshot_fields}

    def restore(self, state: dict) -> None:
        for name, value in state.items():
            setattr(self, name, value)


class TransactionProcessor:
    """
    Serializes operations and provides rollback across registered participants.

    Example:
        ```python
        processor = TransactionProcessor()
        processor.register(asset, market, senior, subordinate, ledger)

        with processor.atomic("deposit"):
            ...  # any exception restores every participant
        ```
    """

    def __init__(self) -> None:
        self._participants: List[Participant] = []
        self._depth = 0
        self._label = ""

    def register(self, *participants: Participant) -> None:
        """Add participants whose state must roll back together."""
        if self._depth:
            raise RuntimeError("Cannot register participants inside an atomic scope")
        for participant in participants:
            if not any(p is participant for p in self._participants):
                self._participants.append(participant)

    @property
    def in_scope(self) -> bool:
        return self._depth > 0

    def atomic(self, label: str = "operation") -> "AtomicScope":
        """Return a context manager wrapping one all-or-nothing operation."""
        return AtomicScope(self, label)


class AtomicScope:
    """
    Context manager for one atomic operation.

    Only the outermost scope captures and restores state; inner scopes are
    pass-through so composed operations share a single commit point.
    """

    def __init__(self, processor: TransactionProcessor, label: str) -> None:
        self._processor = processor
        self._label = label
        self._snapshots: List[Tuple[Participant, Any]] = []
        self._outermost = False

    def __enter__(self) -> TransactionProcessor:
        processor = self._processor
        if processor._depth == 0:
            self._outermost = True
            self._snapshots = [(p, p.snapshot()) for p in processor._participants]
            processor._label = self._label
            logger.debug(f"Started atomic scope '{self._label}'")
        processor._depth += 1
        return processor

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        processor = self._processor
        processor._depth -= 1
        if not self._outermost:
            return
        try:
            if exc_type is not None:
                for participant, state in reversed(self._snapshots):
                    participant.restore(state)
                logger.debug(
                    f"Rolled back '{self._label}' due to {exc_type.__name__}: {exc_val}"
                )
            else:
                logger.debug(f"Committed atomic scope '{self._label}'")
        finally:
            self._snapshots = []
            processor._label = ""
