"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import yaml
from dotenv import load_dotenv


@dataclass
class ClusterConfig:
    """Where the cluster is and how to reach it."""
    namespace: str
    kube_config: str
    context: Optional[str] = None


@dataclass
class ExecConfig:
    """Remote exec retry policy."""
    max_attempts: int = 5
    retry_interval: float = 60.0


@dataclass
class CycleTiming:
    """Delays of the stop / backup or restore / start cycle, in seconds."""
    stop_settle: float = 20.0
    start_settle: float = 20.0
    check_attempts: int = 5
    check_interval: float = 10.0
    restore_tail: float = 60.0


def default_kube_config() -> str:
    """~/.kube/config of the current user."""
    home = os.getenv("HOME") or os.getenv("USERPROFILE") or "~"
    return os.path.join(home, ".kube", "config")


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_exec_config(self) -> ExecConfig:
        """Get remote exec configuration."""
        ...

    def get_cycle_timing(self) -> CycleTiming:
        """Get cold cycle timing."""
        ...


def _positive_int(name: str, raw: Any) -> int:
    value = int(raw)
    if value < 1:
        raise ValueError(f"{name} must be at least 1, got {value}")
    return value


def _non_negative_float(name: str, raw: Any) -> float:
    value = float(raw)
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {value}")
    return value


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def __init__(self, env_file: Optional[str] = None):
        # Values already in the environment win over the .env file
        load_dotenv(env_file)

    def get_exec_config(self) -> ExecConfig:
        """Get remote exec configuration from environment variables."""
        return ExecConfig(
            max_attempts=_positive_int(
                "TINKER_EXEC_MAX_ATTEMPTS", os.getenv("TINKER_EXEC_MAX_ATTEMPTS", "5")
            ),
            retry_interval=_non_negative_float(
                "TINKER_EXEC_RETRY_INTERVAL", os.getenv("TINKER_EXEC_RETRY_INTERVAL", "60")
            ),
        )

    def get_cycle_timing(self) -> CycleTiming:
        """Get cold cycle timing from environment variables."""
        return CycleTiming(
            stop_settle=_non_negative_float("TINKER_STOP_SETTLE", os.getenv("TINKER_STOP_SETTLE", "20")),
            start_settle=_non_negative_float("TINKER_START_SETTLE", os.getenv("TINKER_START_SETTLE", "20")),
            check_attempts=_positive_int("TINKER_CHECK_ATTEMPTS", os.getenv("TINKER_CHECK_ATTEMPTS", "5")),
            check_interval=_non_negative_float(
                "TINKER_CHECK_INTERVAL", os.getenv("TINKER_CHECK_INTERVAL", "10")
            ),
            restore_tail=_non_negative_float("TINKER_RESTORE_TAIL", os.getenv("TINKER_RESTORE_TAIL", "60")),
        )


class YamlConfigProvider:
    """
    YAML file configuration provider.

    Expected layout (every key optional):

        exec:
          maxAttempts: 5
          retryIntervalSeconds: 60
        cycle:
          stopSettleSeconds: 20
          startSettleSeconds: 20
          checkAttempts: 5
          checkIntervalSeconds: 10
          restoreTailSeconds: 60

    Missing keys fall back to the environment provider.
    """

    def __init__(self, path: str, fallback: Optional[ConfigProvider] = None):
        self.path = path
        self.fallback = fallback or EnvConfigProvider()
        self._data = self._load(path)

    @staticmethod
    def _load(path: str) -> Dict[str, Any]:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return data

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name) or {}
        if not isinstance(section, dict):
            raise ValueError(f"Section '{name}' of {self.path} must be a mapping")
        return section

    def get_exec_config(self) -> ExecConfig:
        """Get remote exec configuration from the file."""
        base = self.fallback.get_exec_config()
        section = self._section("exec")
        return ExecConfig(
            max_attempts=_positive_int("exec.maxAttempts", section.get("maxAttempts", base.max_attempts)),
            retry_interval=_non_negative_float(
                "exec.retryIntervalSeconds", section.get("retryIntervalSeconds", base.retry_interval)
            ),
        )

    def get_cycle_timing(self) -> CycleTiming:
        """Get cold cycle timing from the file."""
        base = self.fallback.get_cycle_timing()
        section = self._section("cycle")
        return CycleTiming(
            stop_settle=_non_negative_float(
                "cycle.stopSettleSeconds", section.get("stopSettleSeconds", base.stop_settle)
            ),
            start_settle=_non_negative_float(
                "cycle.startSettleSeconds", section.get("startSettleSeconds", base.start_settle)
            ),
            check_attempts=_positive_int(
                "cycle.checkAttempts", section.get("checkAttempts", base.check_attempts)
            ),
            check_interval=_non_negative_float(
                "cycle.checkIntervalSeconds", section.get("checkIntervalSeconds", base.check_interval)
            ),
            restore_tail=_non_negative_float(
                "cycle.restoreTailSeconds", section.get("restoreTailSeconds", base.restore_tail)
            ),
        )
