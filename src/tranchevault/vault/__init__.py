# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Tranche vaults: the shared share-ledger base and the senior and subordinate tranches.
"""

from .base import OperationContext, OperationResult, TokenizedVault
from .senior import ReportResult, SeniorTranche
from .subordinate import SubordinateTranche

__all__ = [
    "OperationContext",
    "OperationResult",
    "ReportResult",
    "SeniorTranche",
    "SubordinateTranche",
    "TokenizedVault",
]
