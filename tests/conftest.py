"""
Shared pytest fixtures for Tinker tests.

This module provides common fixtures including:
- ExecMocker: Scriptable exec channel with pattern-matched responses
- FakeCoreV1: In-memory stand-in for kubernetes.client.CoreV1Api
- Orchestrator wiring with retry delays disabled
"""

import os
import sys
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union
from unittest.mock import AsyncMock

import pytest
from kubernetes.client import V1ObjectMeta, V1Pod, V1PodList, V1PodStatus
from kubernetes.client.exceptions import ApiException

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tinker.modules.cluster import PodLocator
from tinker.modules.executor import ChannelError, ChannelOutput, ExecGateway
from tinker.modules.orchestrator import LifecycleOrchestrator
from tinker.modules.roles import default_registry

NAMESPACE = "tidb-test"

PROBE_UP = "PID\n12\n"
PROBE_DOWN = "PID\n3\n"


# =============================================================================
# Exec Mocking Infrastructure
# =============================================================================

@dataclass
class ExecResponse:
    """Represents a mocked exec response."""
    stdout: str = ""
    stderr: str = ""
    return_code: int = 0
    error: Optional[str] = None

    def to_output(self) -> ChannelOutput:
        if self.error is not None:
            raise ChannelError(self.error)
        return ChannelOutput(stdout=self.stdout, stderr=self.stderr, return_code=self.return_code)


@dataclass
class ExecCall:
    """Record of an exec made during testing."""
    pod: str
    container: str
    namespace: str
    argv: List[str]

    @property
    def script(self) -> str:
        return self.argv[-1]


@dataclass
class _Registration:
    pattern: str
    responses: List[ExecResponse]
    pod: Optional[str] = None
    hook: Optional[Callable[[ExecCall], None]] = None
    served: int = 0


class ExecMocker:
    """
    Exec channel returning canned responses for scripts matching a pattern.

    Later registrations take precedence, so tests can override the defaults
    installed by fixtures. A list of responses is served in order and the
    last one repeats.

    Usage:
        def test_probe(exec_mocker):
            exec_mocker.register("awk", ExecResponse(stdout="PID\\n12\\n"))
            ...
            assert exec_mocker.calls_matching("awk")
    """

    def __init__(self):
        self._registrations: List[_Registration] = []
        self._lock = threading.Lock()
        self.calls: List[ExecCall] = []
        self.events: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.default_response = ExecResponse()

    def register(
        self,
        pattern: str,
        response: Union[ExecResponse, List[ExecResponse]],
        pod: Optional[str] = None,
        hook: Optional[Callable[[ExecCall], None]] = None,
    ) -> "ExecMocker":
        responses = response if isinstance(response, list) else [response]
        self._registrations.append(_Registration(pattern, list(responses), pod, hook))
        return self

    def run(self, pod: str, container: str, namespace: str, argv: List[str]) -> ChannelOutput:
        call = ExecCall(pod=pod, container=container, namespace=namespace, argv=list(argv))
        with self._lock:
            self.calls.append(call)
            self.events.append(("start", pod))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            registration = self._match(call)
            if registration is None:
                response = self.default_response
            else:
                index = min(registration.served, len(registration.responses) - 1)
                response = registration.responses[index]
                registration.served += 1
        try:
            if registration is not None and registration.hook is not None:
                registration.hook(call)
            return response.to_output()
        finally:
            with self._lock:
                self.in_flight -= 1
                self.events.append(("end", pod))

    def _match(self, call: ExecCall) -> Optional[_Registration]:
        for registration in reversed(self._registrations):
            if registration.pod is not None and registration.pod != call.pod:
                continue
            if registration.pattern in call.script:
                return registration
        return None

    def calls_matching(self, pattern: str) -> List[ExecCall]:
        return [call for call in self.calls if pattern in call.script]

    def pods_matching(self, pattern: str) -> List[str]:
        return [call.pod for call in self.calls_matching(pattern)]


# =============================================================================
# Kubernetes API Mocking
# =============================================================================

def make_pod(
    name: str,
    component: Optional[str],
    phase: str = "Running",
    annotations: Optional[Dict[str, str]] = None,
) -> V1Pod:
    labels = {"app.kubernetes.io/component": component} if component else {"app": "other"}
    return V1Pod(
        metadata=V1ObjectMeta(name=name, namespace=NAMESPACE, labels=labels, annotations=annotations),
        status=V1PodStatus(phase=phase),
    )


@dataclass
class FakeCoreV1:
    """In-memory CoreV1Api covering the calls the locator makes."""
    pods: List[V1Pod] = field(default_factory=list)
    fail_list: bool = False
    fail_patch: List[str] = field(default_factory=list)
    fail_delete: List[str] = field(default_factory=list)
    list_calls: List[Optional[str]] = field(default_factory=list)
    patches: List[tuple] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)

    def list_namespaced_pod(self, namespace: str, label_selector: Optional[str] = None):
        self.list_calls.append(label_selector)
        if self.fail_list:
            raise ApiException(status=503, reason="Service Unavailable")
        items = [pod for pod in self.pods if self._selected(pod, label_selector)]
        return V1PodList(items=items)

    def patch_namespaced_pod(self, name: str, namespace: str, body: dict):
        if name in self.fail_patch:
            raise ApiException(status=409, reason="Conflict")
        self.patches.append((name, body))
        pod = self.get(name)
        annotations = dict(pod.metadata.annotations or {})
        for key, value in body["metadata"]["annotations"].items():
            if value is None:
                annotations.pop(key, None)
            else:
                annotations[key] = value
        pod.metadata.annotations = annotations
        return pod

    def delete_namespaced_pod(self, name: str, namespace: str):
        if name in self.fail_delete:
            raise ApiException(status=403, reason="Forbidden")
        self.deleted.append(name)

    def get(self, name: str) -> V1Pod:
        return next(pod for pod in self.pods if pod.metadata.name == name)

    @staticmethod
    def _selected(pod: V1Pod, label_selector: Optional[str]) -> bool:
        if not label_selector:
            return True
        key, value = label_selector.split("=", 1)
        return (pod.metadata.labels or {}).get(key) == value


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def fake_core():
    """A cluster with one TiDB, two PD and three TiKV pods plus a monitor pod."""
    return FakeCoreV1(
        pods=[
            make_pod("basic-tidb-0", "tidb"),
            make_pod("basic-pd-0", "pd"),
            make_pod("basic-pd-1", "pd"),
            make_pod("basic-tikv-0", "tikv"),
            make_pod("basic-tikv-1", "tikv"),
            make_pod("basic-tikv-2", "tikv"),
            make_pod("basic-monitor-0", None),
        ]
    )


@pytest.fixture
def exec_mocker():
    mocker = ExecMocker()
    # Fleet is quiesced unless a test says otherwise
    mocker.register("awk", ExecResponse(stdout=PROBE_DOWN))
    return mocker


@pytest.fixture
def sleep_mock():
    return AsyncMock()


@pytest.fixture
def gateway(exec_mocker, sleep_mock):
    return ExecGateway(exec_mocker, NAMESPACE, max_attempts=3, retry_interval=60, sleep=sleep_mock)


@pytest.fixture
def locator(fake_core, registry):
    return PodLocator(fake_core, NAMESPACE, registry)


@pytest.fixture
def orchestrator(locator, gateway, registry):
    return LifecycleOrchestrator(locator, gateway, registry)
