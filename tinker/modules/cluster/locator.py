"""
Pod discovery and pod mutation.

The locator is the only component that talks to the Kubernetes control
plane. It never caches: every call reflects the cluster as it is now,
because pods are deleted and recreated between lifecycle phases.
"""

import logging
from typing import List, Optional

from kubernetes.client.exceptions import ApiException

from ...errors import AnnotationError, DiscoveryError, PodMutationError
from ..api import PodPhase, PodTarget
from ..roles import Role, RoleRegistry
from ..roles.registry import COMPONENT_LABEL

logger = logging.getLogger(__name__)

# Pods carrying this annotation are kept in debug mode by tidb-operator:
# their container idles instead of restarting the killed service.
DEBUG_ANNOTATION = "runmode"
DEBUG_VALUE = "debug"


def _phase(raw: Optional[str]) -> PodPhase:
    try:
        return PodPhase(raw)
    except ValueError:
        return PodPhase.UNKNOWN


class PodLocator:
    """Resolves role pods and mutates them."""

    def __init__(self, core_v1, namespace: str, registry: RoleRegistry):
        """
        Initialize locator.

        Args:
            core_v1: kubernetes.client.CoreV1Api instance
            namespace: Namespace of the cluster
            registry: Known roles, used to tag listed pods
        """
        self.core_v1 = core_v1
        self.namespace = namespace
        self.registry = registry

    def list_pods(self, role: Role) -> List[PodTarget]:
        """
        List every pod of a role.

        Raises:
            DiscoveryError: If the API server cannot be queried
        """
        items = self._list(label_selector=role.label_selector)
        return [
            PodTarget(name=pod.metadata.name, role=role.name, phase=_phase(pod.status.phase))
            for pod in items
        ]

    def list_running_pods(self, role: Role) -> List[PodTarget]:
        return [pod for pod in self.list_pods(role) if pod.is_running]

    def list_all_pods(self) -> List[PodTarget]:
        """List every pod of the namespace, whatever its role."""
        targets = []
        for pod in self._list():
            labels = pod.metadata.labels or {}
            role = self.registry.find(labels.get(COMPONENT_LABEL))
            targets.append(
                PodTarget(
                    name=pod.metadata.name,
                    role=role.name if role else None,
                    phase=_phase(pod.status.phase),
                )
            )
        return targets

    def set_debug_annotation(self, pod: PodTarget) -> None:
        """
        Mark a pod as intentionally quiesced.

        Raises:
            AnnotationError: If the pod cannot be patched
        """
        self._patch_annotation(pod, DEBUG_VALUE)

    def clear_debug_annotation(self, pod: PodTarget) -> None:
        """
        Remove the quiesce marker from a pod. No-op if it is absent.

        Raises:
            AnnotationError: If the pod cannot be patched
        """
        self._patch_annotation(pod, None)

    def delete_pod(self, pod: PodTarget) -> None:
        """
        Delete a pod so its controller recreates it.

        Raises:
            PodMutationError: If the pod cannot be deleted
        """
        try:
            self.core_v1.delete_namespaced_pod(name=pod.name, namespace=self.namespace)
        except ApiException as e:
            logger.error(f"Failed to delete pod {pod.name}: {e.status} {e.reason}")
            raise PodMutationError(f"delete pod {pod.name} failed: {e.status} {e.reason}") from e
        logger.info(f"Deleted pod {pod.name}")

    def _list(self, label_selector: Optional[str] = None):
        kwargs = {"namespace": self.namespace}
        if label_selector:
            kwargs["label_selector"] = label_selector
        try:
            result = self.core_v1.list_namespaced_pod(**kwargs)
        except ApiException as e:
            logger.error(f"Failed to list pods in {self.namespace}: {e.status} {e.reason}")
            raise DiscoveryError(
                f"list pods in namespace {self.namespace} failed: {e.status} {e.reason}"
            ) from e
        return result.items or []

    def _patch_annotation(self, pod: PodTarget, value: Optional[str]) -> None:
        # Strategic merge patch creates the annotation map when missing and
        # drops the key when the value is null.
        body = {"metadata": {"annotations": {DEBUG_ANNOTATION: value}}}
        try:
            self.core_v1.patch_namespaced_pod(name=pod.name, namespace=self.namespace, body=body)
        except ApiException as e:
            action = "set" if value else "clear"
            logger.error(f"Failed to {action} debug annotation on pod {pod.name}: {e.status} {e.reason}")
            raise AnnotationError(
                f"{action} annotation {DEBUG_ANNOTATION} on pod {pod.name} failed: {e.status} {e.reason}"
            ) from e
