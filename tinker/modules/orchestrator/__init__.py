"""
Orchestrator Module - Black Box Interface

Purpose: Move the cluster through quiesce, backup or restore, and resume
Interface: LifecycleOrchestrator.stop(), start(), check(), back(), restore(),
           list_versions(); ColdCycle.run_backup(), run_restore(), start_and_wait()
Hidden: Ordering between roles, fan-out and barrier, status interpretation

Stateless: every call re-discovers the cluster, so a crashed run can simply
be started again.
"""

from .cycle import ColdCycle, poll_until
from .factory import OrchestratorFactory
from .lifecycle import LifecycleOrchestrator, parse_token_count, parse_versions

__all__ = [
    "ColdCycle",
    "poll_until",
    "OrchestratorFactory",
    "LifecycleOrchestrator",
    "parse_token_count",
    "parse_versions",
]
