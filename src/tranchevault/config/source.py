# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
External configuration sources.

The tranches never hold their own copy of protocol parameters; they read a
``ConfigurationSource`` through ``ProtocolConfigReader`` at the start of each
call. ``InMemoryConfigSource`` is the reference source used by tests and
by embedded deployments.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol, Union

from ..core.primitives import ConfigKey

logger = logging.getLogger(__name__)


class ConfigurationSource(Protocol):
    """Keyed lookup of integer protocol parameters; ``None`` means unset."""

    def get(self, key: ConfigKey) -> Optional[int]: ...


class InMemoryConfigSource:
    """
    Dictionary-backed configuration source.

    Example:
        ```python
        config = InMemoryConfigSource({ConfigKey.COMMITMENT_DURATION: days(7)})
        config.set(ConfigKey.PROFIT_SHARE, 2_000)
        ```
    """

    def __init__(self, values: Optional[Dict[Union[ConfigKey, str], int]] = None) -> None:
        self._values: Dict[ConfigKey, int] = {}
        for key, value in (values or {}).items():
            self.set(key, value)

    def get(self, key: ConfigKey) -> Optional[int]:
        return self._values.get(ConfigKey(key))

    def set(self, key: Union[ConfigKey, str], value: int) -> None:
        key = ConfigKey(key)
        self._values[key] = int(value)
        logger.info(f"Configuration {key.value} set to {value}")

    def unset(self, key: Union[ConfigKey, str]) -> None:
        self._values.pop(ConfigKey(key), None)

    def as_dict(self) -> Dict[str, int]:
        return {key.value: value for key, value in self._values.items()}
