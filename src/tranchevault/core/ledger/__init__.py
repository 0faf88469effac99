# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Activity ledger for tranche operations.
"""

from .ledger import ActivityLedger
from .queries import ActivityQueries
from .records import ActivityRecord

__all__ = [
    "ActivityLedger",
    "ActivityQueries",
    "ActivityRecord",
]
