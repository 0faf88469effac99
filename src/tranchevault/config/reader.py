# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Configuration reader with defaults and validation.

Raw values from the source are never trusted as-is: unset keys fall back to
documented defaults, negative values are rejected and out-of-range ratios are
clamped with a warning. ``PROFIT_SHARE`` passes through untouched, negative or
not, so that only the yield-share synchronizer rejects it and a bad value never
blocks a snapshot.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from ..core.errors import ConfigurationError
from ..core.primitives import MAX_BPS, ConfigKey
from .settings import TrancheSettings
from .source import ConfigurationSource

logger = logging.getLogger(__name__)

# Ratio keys clamped to MAX_BPS on read
BPS_KEYS = frozenset(
    {
        ConfigKey.MAX_SUBORDINATION_RATIO,
        ConfigKey.MIN_BACKING_RATIO,
        ConfigKey.DEPLOYMENT_RATIO,
    }
)

# Keys where an explicit zero means "use the default"
ZERO_MEANS_UNSET = frozenset({ConfigKey.LOCK_DURATION, ConfigKey.WITHDRAWAL_WINDOW})

# Keys passed through untouched; their consumer validates them
UNCHECKED_KEYS = frozenset({ConfigKey.PROFIT_SHARE})


class ProtocolConfigReader:
    """
    Resolve a ``ConfigurationSource`` into ``TrancheSettings`` snapshots.

    Example:
        ```python
        reader = ProtocolConfigReader(InMemoryConfigSource())
        settings = reader.snapshot()
        settings.lock_duration  # 90 days in seconds
        ```
    """

    def __init__(self, source: ConfigurationSource) -> None:
        self.source = source

    def raw(self, key: ConfigKey) -> Optional[int]:
        """Value as stored in the source, without defaults or clamping."""
        return self.source.get(key)

    def snapshot(self) -> TrancheSettings:
        """Read every key once and return a frozen, validated settings object."""
        values: Dict[str, int] = {}
        for key in ConfigKey:
            value = self._resolve(key)
            if value is not None:
                values[key.value] = value
        return TrancheSettings(**values)

    def _resolve(self, key: ConfigKey) -> Optional[int]:
        raw = self.source.get(key)
        if raw is None:
            return None
        value = int(raw)
        if key in UNCHECKED_KEYS:
            return value
        if value < 0:
            raise ConfigurationError(f"Configuration {key.value} must be non-negative, got {value}")
        if value == 0 and key in ZERO_MEANS_UNSET:
            return None
        if key in BPS_KEYS and value > MAX_BPS:
            logger.warning(
                f"Configuration {key.value}={value} exceeds {MAX_BPS} bps; clamping"
            )
            return MAX_BPS
        return value
