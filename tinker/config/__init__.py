"""Process configuration: cluster location, exec retry policy and cycle timing."""

from .provider import (
    ClusterConfig,
    ConfigProvider,
    CycleTiming,
    EnvConfigProvider,
    ExecConfig,
    YamlConfigProvider,
    default_kube_config,
)

__all__ = [
    "ClusterConfig",
    "ConfigProvider",
    "CycleTiming",
    "EnvConfigProvider",
    "ExecConfig",
    "YamlConfigProvider",
    "default_kube_config",
]
