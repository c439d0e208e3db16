"""
Lifecycle orchestrator for cold backup and restore.

States are observed, never stored:
- Running: supervising processes alive, no debug marker
- Quiesced: debug marker on every pod, supervising processes killed
- Backing up / restoring: only valid while quiesced
- Starting: marker cleared, pods deleted, health not yet verified

Stop, Start, Check and List act on pods one at a time. Back and Restore fan
out one task per running pod of a role and join before the next role.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

from ...errors import (
    ExecFailedError,
    PreconditionError,
    QuiesceError,
    VersionNotFoundError,
)
from ..api import CheckReport, Operation, OperationReport, PodOutcome, PodStatus, PodTarget
from ..cluster import PodLocator
from ..executor import ExecGateway
from ..roles import BACKUP_SUFFIX, LIVENESS_THRESHOLD, Role, RoleRegistry
from ..scripts import (
    build_backup_script,
    build_list_probe,
    build_quiesce_command,
    build_restore_script,
    build_status_probe,
    exec_argv,
    validate_version,
)

logger = logging.getLogger(__name__)


def parse_token_count(stdout: str) -> Optional[int]:
    """Token count from the second line of a status probe, None if absent."""
    lines = stdout.splitlines()
    if len(lines) < 2:
        return None
    try:
        return int(lines[1].strip())
    except ValueError:
        return None


def parse_versions(entries: List[str]) -> List[str]:
    """Backup labels from the lines of a list probe, suffix stripped."""
    versions = []
    for entry in entries:
        if entry.endswith(BACKUP_SUFFIX) and len(entry) > len(BACKUP_SUFFIX):
            versions.append(entry[: -len(BACKUP_SUFFIX)])
    return versions


class LifecycleOrchestrator:
    """Drives the fleet through stop, backup or restore, and start."""

    def __init__(self, locator: PodLocator, gateway: ExecGateway, registry: RoleRegistry):
        """
        Initialize orchestrator.

        Args:
            locator: Pod discovery and mutation
            gateway: Remote exec with retry
            registry: Roles and their orderings
        """
        self.locator = locator
        self.gateway = gateway
        self.registry = registry

    async def stop(self) -> None:
        """
        Quiesce every role.

        Logic:
        1. Put the debug marker on every pod of the namespace; any failure
           aborts before a single process is killed
        2. For each role in stop order, kill the supervising process of every
           running pod, one pod at a time

        Raises:
            DiscoveryError: If pods cannot be listed
            AnnotationError: If a pod cannot be annotated
            QuiesceError: If a kill command fails
        """
        pods = await asyncio.to_thread(self.locator.list_all_pods)
        for pod in pods:
            await asyncio.to_thread(self.locator.set_debug_annotation, pod)
        logger.info(f"Debug annotation set on {len(pods)} pods")

        for role in self.registry.roles_in_stop_order():
            await self._quiesce_role(role)
            logger.info(f"Stopped role {role.name}")

    async def start(self) -> None:
        """
        Resume every role.

        Clears the debug marker on every pod, then deletes the running pods
        of each role in start order so their controller recreates them.
        Does not wait for the new pods; see ColdCycle.start_and_wait().

        Raises:
            DiscoveryError: If pods cannot be listed
            AnnotationError: If a marker cannot be cleared
            PodMutationError: If a pod cannot be deleted
        """
        pods = await asyncio.to_thread(self.locator.list_all_pods)
        for pod in pods:
            await asyncio.to_thread(self.locator.clear_debug_annotation, pod)
        logger.info(f"Debug annotation cleared on {len(pods)} pods")

        for role in self.registry.roles_in_start_order():
            running = await asyncio.to_thread(self.locator.list_running_pods, role)
            for pod in running:
                await asyncio.to_thread(self.locator.delete_pod, pod)
            logger.info(f"Restarted {len(running)} pods of role {role.name}")

    async def check(self, expect_up: bool = True) -> CheckReport:
        """
        Probe every running pod of every role in check order.

        Read-only. A pod fails when its observed state differs from
        ``expect_up`` or when its probe cannot be run or parsed. When
        expecting up, pods that are not Running fail too, and so does a
        role without any running pod.
        """
        statuses: List[PodStatus] = []
        for role in self.registry.roles_in_check_order():
            statuses.extend(await self._probe_role(role, expect_up))
        report = CheckReport(statuses=statuses)
        if not report.ok:
            logger.info(f"Check failed for roles: {', '.join(report.failed_roles)}")
        return report

    async def check_role(self, role: Role, expect_up: bool) -> CheckReport:
        """Probe the running pods of a single role."""
        return CheckReport(statuses=await self._probe_role(role, expect_up))

    async def back(self, version: str) -> OperationReport:
        """
        Snapshot the data directory of every role in backup scope.

        Roles are processed one after another. Each role must be quiesced,
        otherwise the whole backup aborts. Pods of a role run concurrently;
        a pod whose exec fails is recorded in the report and does not stop
        its siblings.

        Raises:
            InvalidVersionError: If the label is not usable
            PreconditionError: If a role is not quiesced
            DiscoveryError: If pods cannot be listed
        """
        validate_version(version)
        report = OperationReport(operation=Operation.BACK, version=version)

        for role in self.registry.roles_in_backup_scope():
            await self._require_quiesced(role)
            pods = await asyncio.to_thread(self.locator.list_running_pods, role)
            argv = exec_argv(build_backup_script(role, version))
            report.outcomes.extend(await self._fan_out(role, pods, argv, Operation.BACK))

        self._log_report(report)
        return report

    async def restore(self, version: str) -> OperationReport:
        """
        Replace the live data of every role in backup scope with a backup set.

        All preconditions are verified for every role before anything is
        deleted: each role must be quiesced and every pod must hold the
        requested version. Execution then follows the same per-role
        fan-out as back().

        Raises:
            InvalidVersionError: If the label is not usable
            PreconditionError: If a role is not quiesced
            VersionNotFoundError: If a pod lacks the backup set
            DiscoveryError: If pods cannot be listed
        """
        validate_version(version)
        scope = self.registry.roles_in_backup_scope()
        for role in scope:
            await self._require_quiesced(role)
        await self.verify_version_available(version, scope)

        report = OperationReport(operation=Operation.RESTORE, version=version)
        for role in scope:
            pods = await asyncio.to_thread(self.locator.list_running_pods, role)
            argv = exec_argv(build_restore_script(role, version))
            report.outcomes.extend(await self._fan_out(role, pods, argv, Operation.RESTORE))

        self._log_report(report)
        return report

    async def list_versions(self) -> Dict[str, List[str]]:
        """
        Backup labels available on each pod of the roles in backup scope.

        Returns:
            Mapping of pod name to version labels

        Raises:
            ExecFailedError: If a pod cannot be listed
        """
        inventory: Dict[str, List[str]] = {}
        for role in self.registry.roles_in_backup_scope():
            inventory.update(await self._list_role_versions(role))
        return inventory

    async def verify_version_available(
        self, version: str, roles: Optional[Sequence[Role]] = None
    ) -> None:
        """
        Ensure every running pod of the given roles holds a backup set.

        Raises:
            VersionNotFoundError: Naming every pod that lacks it
        """
        validate_version(version)
        missing: List[str] = []
        if roles is None:
            roles = self.registry.roles_in_backup_scope()
        for role in roles:
            for pod, versions in (await self._list_role_versions(role)).items():
                if version not in versions:
                    logger.info(f"Version {version} not found on pod {pod} ({role.name})")
                    missing.append(pod)
        if missing:
            raise VersionNotFoundError(version, missing)

    async def _quiesce_role(self, role: Role) -> None:
        pods = await asyncio.to_thread(self.locator.list_running_pods, role)
        argv = exec_argv(build_quiesce_command(role))
        for pod in pods:
            try:
                await self.gateway.exec(pod.name, role.container, argv)
            except ExecFailedError as e:
                logger.error(f"Kill {role.name} failed on pod {pod.name}: {e}")
                raise QuiesceError(f"stop {role.name} on pod {pod.name} failed: {e}") from e

    async def _probe_role(self, role: Role, expect_up: bool) -> List[PodStatus]:
        pods = await asyncio.to_thread(self.locator.list_pods, role)
        running = [pod for pod in pods if pod.is_running]
        statuses = []
        if expect_up:
            # Pods still being recreated and roles with nothing running are not up
            for pod in pods:
                if not pod.is_running:
                    statuses.append(
                        PodStatus(
                            role=role.name,
                            pod=pod.name,
                            expect_up=expect_up,
                            ok=False,
                            reason=f"pod is {pod.phase.value}",
                        )
                    )
            if not running:
                logger.error(f"Status check failed for role {role.name}: no running pods")
                statuses.append(
                    PodStatus(
                        role=role.name, pod="-", expect_up=expect_up, ok=False, reason="no running pods"
                    )
                )

        argv = exec_argv(build_status_probe(role))
        for pod in running:
            try:
                result = await self.gateway.exec(pod.name, role.container, argv)
            except ExecFailedError as e:
                statuses.append(
                    PodStatus(role=role.name, pod=pod.name, expect_up=expect_up, ok=False, reason=str(e))
                )
                continue

            count = parse_token_count(result.stdout)
            if count is None:
                statuses.append(
                    PodStatus(
                        role=role.name,
                        pod=pod.name,
                        expect_up=expect_up,
                        ok=False,
                        reason=f"unexpected probe output: {result.stdout.strip()!r}",
                    )
                )
                continue

            up = count > LIVENESS_THRESHOLD
            status = PodStatus(
                role=role.name,
                pod=pod.name,
                expect_up=expect_up,
                token_count=count,
                up=up,
                ok=up == expect_up,
            )
            if not status.ok:
                logger.error(
                    f"Status check failed on pod {pod.name}: expected "
                    f"{'up' if expect_up else 'down'}, token count {count}"
                )
            statuses.append(status)
        return statuses

    async def _require_quiesced(self, role: Role) -> None:
        report = await self.check_role(role, expect_up=False)
        if not report.ok:
            pods = ", ".join(status.pod for status in report.failures)
            raise PreconditionError(f"role {role.name} is not quiesced on pods: {pods}")

    async def _list_role_versions(self, role: Role) -> Dict[str, List[str]]:
        pods = await asyncio.to_thread(self.locator.list_running_pods, role)
        argv = exec_argv(build_list_probe(role))
        inventory = {}
        for pod in pods:
            result = await self.gateway.exec(pod.name, role.container, argv)
            inventory[pod.name] = parse_versions(result.lines())
        return inventory

    async def _fan_out(
        self, role: Role, pods: List[PodTarget], argv: List[str], operation: Operation
    ) -> List[PodOutcome]:
        """Run argv on every pod concurrently and wait for all of them."""
        if not pods:
            logger.warning(f"No running pods for role {role.name}, skipping {operation.value}")
            return []

        logger.info(f"{operation.value} {role.name} on {len(pods)} pods")
        # One worker per pod, the loop's default pool is capped by CPU count
        executor = ThreadPoolExecutor(
            max_workers=len(pods), thread_name_prefix=f"tinker-{operation.value}-{role.name}"
        )
        try:
            results = await asyncio.gather(
                *(self._run_on_pod(role, pod, argv, operation, executor) for pod in pods),
                return_exceptions=True,
            )
        finally:
            executor.shutdown(wait=True)

        outcomes = []
        for pod, result in zip(pods, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error(f"{operation.value} task for pod {pod.name} crashed: {result!r}")
                result = PodOutcome(role=role.name, pod=pod.name, success=False, error=repr(result))
            outcomes.append(result)
        return outcomes

    async def _run_on_pod(
        self,
        role: Role,
        pod: PodTarget,
        argv: List[str],
        operation: Operation,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> PodOutcome:
        logger.info(f"{operation.value} start on pod {pod.name}")
        try:
            result = await self.gateway.exec(pod.name, role.container, argv, executor=executor)
        except ExecFailedError as e:
            logger.error(f"{operation.value} failed on pod {pod.name} ({role.name}): {e}")
            return PodOutcome(
                role=role.name, pod=pod.name, success=False, error=str(e), attempts=e.attempts
            )
        logger.info(f"{operation.value} finished on pod {pod.name}")
        logger.debug(f"{operation.value} output of pod {pod.name}:\n{result.stdout}")
        return PodOutcome(role=role.name, pod=pod.name, success=True, attempts=result.attempts)

    @staticmethod
    def _log_report(report: OperationReport) -> None:
        if report.is_partial:
            failed = ", ".join(outcome.pod for outcome in report.failed)
            logger.warning(
                f"{report.operation.value} {report.version}: "
                f"{len(report.failed)}/{len(report.outcomes)} pods failed ({failed})"
            )
        else:
            logger.info(
                f"{report.operation.value} {report.version}: all {len(report.outcomes)} pods succeeded"
            )
