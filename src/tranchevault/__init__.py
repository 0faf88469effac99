# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

import importlib
import logging

"""
Tranchevault - Two-Tranche Risk-Sharing Vault Accounting

A deterministic accounting engine for a senior / subordinate vault pair that
deploys into an external credit market. The subordinate tranche holds senior
shares, absorbs realized losses first and earns a configurable share of
senior profit.

Key Entry Points:
- tranchevault.system.build_tranche_system() - Wire a complete system
- tranchevault.vault.* - Senior and subordinate tranches
- tranchevault.engine.* - Subordination, withdrawal state, loss absorption,
  yield sharing and deployment
- tranchevault.reporting - pandas views of positions and cooldowns

Example Usage:
    ```python
    from tranchevault.core.primitives import ConfigKey, days
    from tranchevault.system import build_tranche_system

    system = build_tranche_system({ConfigKey.DEBT_CAP: 10_000})
    system.fund("alice", 10_000)
    system.senior.deposit(10_000, "alice")
    system.subordinate.deposit(1_500, "alice")
    system.clock.advance(days(90))
    system.subordinate.start_cooldown("alice", 1_500)
    ```
"""

logging.getLogger(__name__).addHandler(logging.NullHandler())


# Public API surface (lazy-loaded on first attribute access)
__all__ = [  # noqa: F822 - lazy loading
    "config",
    "core",
    "engine",
    "market",
    "reporting",
    "system",
    "vault",
]


_LAZY_MODULES = {
    "config": "tranchevault.config",
    "core": "tranchevault.core",
    "engine": "tranchevault.engine",
    "market": "tranchevault.market",
    "reporting": "tranchevault.reporting",
    "system": "tranchevault.system",
    "vault": "tranchevault.vault",
}


def __getattr__(name: str):
    module_path = _LAZY_MODULES.get(name)
    if module_path is None:
        raise AttributeError(f"module 'tranchevault' has no attribute '{name}'")
    module = importlib.import_module(module_path)
    globals()[name] = module
    return module
