# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Tranchevault Core Primitives

Building blocks shared by every component: the immutable model base,
enumerations, integer basis-point arithmetic and time sources.
"""

from .clock import Clock, ManualClock, SystemClock
from .enums import (
    ActivityKind,
    ConfigKey,
    Role,
    Rounding,
    TrancheKind,
    enum_to_string,
)
from .model import Model
from .numeric import MAX_BPS, SECONDS_PER_DAY, UNLIMITED, apply_bps, days, mul_div

__all__ = [
    # Core models
    "Model",
    # Enums
    "ActivityKind",
    "ConfigKey",
    "Role",
    "Rounding",
    "TrancheKind",
    "enum_to_string",
    # Arithmetic
    "MAX_BPS",
    "SECONDS_PER_DAY",
    "UNLIMITED",
    "apply_bps",
    "days",
    "mul_div",
    # Time
    "Clock",
    "ManualClock",
    "SystemClock",
]
