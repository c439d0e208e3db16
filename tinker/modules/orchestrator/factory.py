"""
Orchestrator Factory following Black Box Design principles.

This factory:
- Builds the Kubernetes client, locator and exec gateway from configuration
- Wires them into the orchestrator
- Returns only the orchestrator facade
"""

import logging
from typing import Optional

from ...config import ClusterConfig, ExecConfig
from ..cluster import PodLocator, build_core_api
from ..executor import ExecGateway, KubernetesExecChannel
from ..roles import RoleRegistry, default_registry
from .lifecycle import LifecycleOrchestrator

logger = logging.getLogger(__name__)


class OrchestratorFactory:
    """Composition root of the lifecycle stack."""

    @staticmethod
    def build(
        cluster: ClusterConfig,
        exec_config: Optional[ExecConfig] = None,
        registry: Optional[RoleRegistry] = None,
        core_v1=None,
    ) -> LifecycleOrchestrator:
        """
        Build a ready-to-use orchestrator.

        Args:
            cluster: Namespace and kubeconfig location
            exec_config: Retry policy of the exec gateway
            registry: Roles, defaults to the standard TiDB roles
            core_v1: Pre-built CoreV1Api, built from the kubeconfig when omitted

        Raises:
            ClusterConfigError: If the Kubernetes client cannot be built
        """
        exec_config = exec_config or ExecConfig()
        registry = registry or default_registry()
        if core_v1 is None:
            core_v1 = build_core_api(cluster.kube_config, cluster.context)

        locator = PodLocator(core_v1, cluster.namespace, registry)
        gateway = ExecGateway(
            KubernetesExecChannel(core_v1),
            cluster.namespace,
            max_attempts=exec_config.max_attempts,
            retry_interval=exec_config.retry_interval,
        )
        logger.debug(f"Orchestrator built for namespace {cluster.namespace}")
        return LifecycleOrchestrator(locator, gateway, registry)
