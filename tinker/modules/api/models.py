"""
Tinker shared data models.

These models define the structure of all data passed between the
orchestrator, its collaborators and the CLI.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

# Enums


class PodPhase(str, Enum):
    """Kubernetes pod phase."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


class Operation(str, Enum):
    """Fleet operations that fan out over pods."""

    BACK = "back"
    RESTORE = "restore"


# Cluster models


class PodTarget(BaseModel):
    """A pod resolved from the cluster for the current operation."""

    name: str = Field(..., description="Pod name")
    role: Optional[str] = Field(None, description="Role name, None for pods outside the registry")
    phase: PodPhase = Field(PodPhase.UNKNOWN, description="Pod phase at listing time")

    model_config = {"frozen": True}

    @property
    def is_running(self) -> bool:
        return self.phase == PodPhase.RUNNING


# Execution models


class ExecResult(BaseModel):
    """Captured output of one successful remote command."""

    pod: str
    container: str
    stdout: str = ""
    stderr: str = ""
    return_code: int = 0
    attempts: int = Field(1, ge=1, description="Attempts used, including the successful one")

    @property
    def retries(self) -> int:
        return self.attempts - 1

    def lines(self) -> List[str]:
        """Non-empty stdout lines with line endings stripped."""
        return [line.strip() for line in self.stdout.splitlines() if line.strip()]


class PodOutcome(BaseModel):
    """Result of one pod task inside a fan-out."""

    role: str
    pod: str
    success: bool
    error: Optional[str] = None
    attempts: int = 0


class OperationReport(BaseModel):
    """Per-pod results of a backup or restore."""

    operation: Operation
    version: str
    outcomes: List[PodOutcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> List[PodOutcome]:
        return [outcome for outcome in self.outcomes if outcome.success]

    @property
    def failed(self) -> List[PodOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]

    @property
    def is_partial(self) -> bool:
        """True when at least one pod failed."""
        return bool(self.failed)


# Status models


class PodStatus(BaseModel):
    """Verdict of the status probe for one pod."""

    role: str
    pod: str
    expect_up: bool
    token_count: Optional[int] = None
    up: Optional[bool] = Field(None, description="Observed liveness, None when the probe failed")
    ok: bool
    reason: Optional[str] = None


class CheckReport(BaseModel):
    """Status verdicts for every probed pod."""

    statuses: List[PodStatus] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(status.ok for status in self.statuses)

    @property
    def failures(self) -> List[PodStatus]:
        return [status for status in self.statuses if not status.ok]

    @property
    def failed_roles(self) -> List[str]:
        """Roles with at least one failing pod, in probe order."""
        roles: List[str] = []
        for status in self.failures:
            if status.role not in roles:
                roles.append(status.role)
        return roles


__all__ = [
    "PodPhase",
    "Operation",
    "PodTarget",
    "ExecResult",
    "PodOutcome",
    "OperationReport",
    "PodStatus",
    "CheckReport",
]
