"""
Cold backup and restore cycles.

A cycle composes the lifecycle operations with settle delays:
stop -> wait -> back or restore -> start -> wait until healthy.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from ...config import CycleTiming
from ...errors import ReadinessTimeoutError
from ..api import CheckReport, Operation, OperationReport
from ..scripts import validate_version
from .lifecycle import LifecycleOrchestrator

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


async def poll_until(
    predicate: Callable[[], Awaitable[bool]],
    attempts: int,
    interval: float,
    initial_delay: float = 0,
    sleep: Optional[Sleep] = None,
) -> bool:
    """
    Evaluate ``predicate`` until it holds, at most ``attempts`` times.

    Args:
        predicate: Async condition to evaluate
        attempts: Maximum number of evaluations
        interval: Seconds between evaluations
        initial_delay: Seconds to wait before the first evaluation
        sleep: Awaitable sleep, replaced in tests

    Returns:
        True as soon as the predicate holds, False once attempts run out
    """
    sleep = sleep or asyncio.sleep
    if initial_delay > 0:
        await sleep(initial_delay)
    for attempt in range(1, attempts + 1):
        if await predicate():
            return True
        if attempt < attempts:
            await sleep(interval)
    return False


class ColdCycle:
    """Runs a full quiesce / act / resume cycle and reports progress."""

    def __init__(
        self,
        orchestrator: LifecycleOrchestrator,
        timing: Optional[CycleTiming] = None,
        progress: Optional[Callable[[str], None]] = None,
        sleep: Optional[Sleep] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cycle.

        Args:
            orchestrator: Lifecycle operations
            timing: Settle delays and health polling policy
            progress: Receives human-readable progress lines
            sleep: Awaitable sleep, replaced in tests
            clock: Monotonic clock used for elapsed times
        """
        self.orchestrator = orchestrator
        self.timing = timing or CycleTiming()
        self._progress = progress or logger.info
        self._sleep = sleep or asyncio.sleep
        self._clock = clock

    async def start_and_wait(self) -> CheckReport:
        """
        Start every role and poll check() until all pods are up.

        Raises:
            ReadinessTimeoutError: If pods are still not up after the last attempt
        """
        await self.orchestrator.start()
        last_report = CheckReport()

        async def healthy() -> bool:
            nonlocal last_report
            last_report = await self.orchestrator.check()
            if not last_report.ok:
                self._progress("waiting for pods start")
            return last_report.ok

        ready = await poll_until(
            healthy,
            attempts=self.timing.check_attempts,
            interval=self.timing.check_interval,
            initial_delay=self.timing.start_settle,
            sleep=self._sleep,
        )
        if not ready:
            roles = ", ".join(last_report.failed_roles) or "unknown"
            raise ReadinessTimeoutError(
                f"pods check exceeded {self.timing.check_attempts} attempts, roles not up: {roles}"
            )
        self._progress("check success")
        return last_report

    async def run_backup(self, version: str) -> OperationReport:
        """Stop, snapshot every pod into ``version``, start and wait."""
        return await self._run(Operation.BACK, version)

    async def run_restore(self, version: str) -> OperationReport:
        """Stop, restore every pod from ``version``, start and wait."""
        return await self._run(Operation.RESTORE, version)

    async def _run(self, operation: Operation, version: str) -> OperationReport:
        validate_version(version)
        if operation is Operation.RESTORE:
            # Fail while the cluster still serves traffic
            await self.orchestrator.verify_version_available(version)

        started = self._clock()
        self._progress("it will try to stop all components")
        await self.orchestrator.stop()
        self._progress(f"it has stopped all components, costs: {self._elapsed(started):.1f} s")
        await self._sleep(self.timing.stop_settle)

        self._progress(f"it will {operation.value} data, it can not be interrupted, please wait")
        try:
            if operation is Operation.BACK:
                report = await self.orchestrator.back(version)
            else:
                report = await self.orchestrator.restore(version)
        except Exception:
            logger.error("Cluster is left in debug mode, run `tinker start` to resume it")
            raise
        self._progress(f"it has finished {operation.value} {version}, costs: {self._elapsed(started):.1f} s")

        await self.start_and_wait()
        if operation is Operation.RESTORE and self.timing.restore_tail > 0:
            await self._sleep(self.timing.restore_tail)
        self._progress(f"it finished all, costs: {self._elapsed(started):.1f} s")
        return report

    def _elapsed(self, started: float) -> float:
        return self._clock() - started
