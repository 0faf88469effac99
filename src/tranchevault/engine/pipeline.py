# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Operation pipeline.

Every vault operation is three plain callables run in order inside one
atomic scope:

    validate() -> context
    mutate(context) -> result
    post_effect(context, result)   for each post effect

Validation reads snapshots and raises before anything changes; mutation
moves balances; post effects update withdrawal records, rebalance capital
and write the activity ledger. An exception at any stage rolls every
registered participant back.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, TypeVar

from ..core.atomic import TransactionProcessor

logger = logging.getLogger(__name__)

C = TypeVar("C")
R = TypeVar("R")

Validator = Callable[[], C]
Mutator = Callable[[C], R]
PostEffect = Callable[[C, R], None]


class OperationPipeline:
    """
    Runs ``validate -> mutate -> post effects`` as a single atomic unit.

    Example:
        ```python
        pipeline = OperationPipeline(processor)
        shares = pipeline.run(
            "deposit",
            validate=lambda: build_context(),
            mutate=lambda ctx: mint(ctx),
            post_effects=[record_commitment, write_ledger],
        )
        ```
    """

    def __init__(self, processor: TransactionProcessor) -> None:
        self.processor = processor

    def run(
        self,
        name: str,
        *,
        validate: Validator,
        mutate: Mutator,
        post_effects: Iterable[PostEffect] = (),
    ) -> Any:
        with self.processor.atomic(name):
            context = validate()
            logger.debug(f"{name}: validated")
            result = mutate(context)
            for effect in post_effects:
                effect(context, result)
            logger.debug(f"{name}: completed")
            return result
