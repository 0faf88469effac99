# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Protocol configuration: sources, resolved settings and the reader between them.
"""

from .reader import ProtocolConfigReader
from .settings import TrancheSettings
from .source import ConfigurationSource, InMemoryConfigSource

__all__ = [
    "ConfigurationSource",
    "InMemoryConfigSource",
    "ProtocolConfigReader",
    "TrancheSettings",
]
