# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Tranche accounting engine: subordination limits, withdrawal state machine,
loss absorption, yield sharing, deployment and the operation pipeline.
"""

from . import subordination
from .deployment import DeploymentManager, RebalancePlan, RebalanceResult
from .loss_absorption import LossAbsorption, LossAbsorptionEngine
from .pipeline import OperationPipeline
from .subordination import SubordinationSnapshot
from .withdrawal_state import (
    CommitmentBook,
    CooldownBook,
    CooldownPhase,
    CooldownRecord,
    LockBook,
    WithdrawalStateMachine,
)
from .yield_share import YieldShareSynchronizer

__all__ = [
    "CommitmentBook",
    "CooldownBook",
    "CooldownPhase",
    "CooldownRecord",
    "DeploymentManager",
    "LockBook",
    "LossAbsorption",
    "LossAbsorptionEngine",
    "OperationPipeline",
    "RebalancePlan",
    "RebalanceResult",
    "SubordinationSnapshot",
    "WithdrawalStateMachine",
    "YieldShareSynchronizer",
    "subordination",
]
