"""
Remote exec channel into running containers.

The Kubernetes implementation opens the pod exec websocket and collects
stdout, stderr and the exit code of a single command.
"""

import logging
from dataclasses import dataclass
from typing import List, Protocol

from kubernetes.client.exceptions import ApiException
from kubernetes.stream import stream

logger = logging.getLogger(__name__)


class ChannelError(Exception):
    """The command could not be delivered or its stream broke."""


@dataclass
class ChannelOutput:
    """Raw output of one command."""

    stdout: str
    stderr: str
    return_code: int


class ExecChannel(Protocol):
    """Protocol for remote command transports."""

    def run(self, pod: str, container: str, namespace: str, argv: List[str]) -> ChannelOutput:
        """
        Run argv in a container and wait for it to finish.

        Raises:
            ChannelError: On transport failure
        """
        ...


class KubernetesExecChannel:
    """Exec channel backed by the Kubernetes pod exec API."""

    def __init__(self, core_v1, update_timeout: float = 1.0):
        """
        Initialize channel.

        Args:
            core_v1: kubernetes.client.CoreV1Api instance
            update_timeout: Seconds to block on each websocket poll
        """
        self.core_v1 = core_v1
        self.update_timeout = update_timeout

    def run(self, pod: str, container: str, namespace: str, argv: List[str]) -> ChannelOutput:
        try:
            resp = stream(
                self.core_v1.connect_get_namespaced_pod_exec,
                pod,
                namespace,
                container=container,
                command=argv,
                stderr=True,
                stdin=False,
                stdout=True,
                tty=False,
                _preload_content=False,
            )
        except ApiException as e:
            raise ChannelError(f"exec rejected by API server: {e.status} {e.reason}") from e
        except Exception as e:
            raise ChannelError(f"exec stream could not be opened: {e}") from e

        stdout: List[str] = []
        stderr: List[str] = []
        try:
            while resp.is_open():
                resp.update(timeout=self.update_timeout)
                if resp.peek_stdout():
                    stdout.append(resp.read_stdout())
                if resp.peek_stderr():
                    stderr.append(resp.read_stderr())
            return_code = self._return_code(resp, pod)
        except ChannelError:
            raise
        except Exception as e:
            raise ChannelError(f"exec stream broke: {e}") from e
        finally:
            resp.close()

        return ChannelOutput(stdout="".join(stdout), stderr="".join(stderr), return_code=return_code)

    @staticmethod
    def _return_code(resp, pod: str) -> int:
        """Exit code from the status channel, 0 when the server sent none."""
        try:
            code = resp.returncode
        except (KeyError, IndexError, TypeError, ValueError):
            code = None
        if code is None:
            # kill 1 tears the container down before a status is written
            logger.debug(f"No exit status received from pod {pod}, assuming success")
            return 0
        return int(code)
