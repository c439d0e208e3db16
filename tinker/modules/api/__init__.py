"""
API Module - Black Box Interface

Purpose: Shared data models of the orchestrator surface
Interface: PodTarget, ExecResult, PodOutcome, OperationReport, PodStatus, CheckReport
Hidden: Validation rules

Every other module exchanges data through these models.
"""

from .models import (
    CheckReport,
    ExecResult,
    Operation,
    OperationReport,
    PodOutcome,
    PodPhase,
    PodStatus,
    PodTarget,
)

__all__ = [
    "CheckReport",
    "ExecResult",
    "Operation",
    "OperationReport",
    "PodOutcome",
    "PodPhase",
    "PodStatus",
    "PodTarget",
]
