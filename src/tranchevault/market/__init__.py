# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Credit market collaborator interface and in-memory implementation.
"""

from .credit_market import CreditMarket, InMemoryCreditMarket

__all__ = ["CreditMarket", "InMemoryCreditMarket"]
