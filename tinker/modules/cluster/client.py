"""Kubernetes API client construction."""

import logging
import os
from typing import Optional

from kubernetes import client
from kubernetes import config as k8s_config
from kubernetes.config.config_exception import ConfigException

from ...errors import ClusterConfigError

logger = logging.getLogger(__name__)


def build_core_api(kube_config: Optional[str] = None, context: Optional[str] = None) -> client.CoreV1Api:
    """
    Build a CoreV1Api without touching the global client configuration.

    Uses the kubeconfig file when it exists and the in-cluster service
    account otherwise.

    Raises:
        ClusterConfigError: If no usable configuration is found
    """
    path = os.path.expanduser(kube_config) if kube_config else None
    try:
        if path and os.path.exists(path):
            logger.debug(f"Loading kubeconfig from {path}")
            api_client = k8s_config.new_client_from_config(config_file=path, context=context)
        else:
            logger.info(f"Kubeconfig {path} not found, using in-cluster configuration")
            configuration = client.Configuration()
            k8s_config.load_incluster_config(client_configuration=configuration)
            api_client = client.ApiClient(configuration=configuration)
    except (ConfigException, OSError, ValueError) as e:
        raise ClusterConfigError(f"init k8s client failed: {e}") from e
    return client.CoreV1Api(api_client)
