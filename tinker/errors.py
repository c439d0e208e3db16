"""
Error taxonomy for tinker operations.

Every error carries the process exit code the CLI uses for it, so callers
can tell a discovery failure from an unsafe precondition or a broken
quiescing invariant without parsing messages.
"""

from typing import Optional


class TinkerError(Exception):
    """Base class for all tinker errors."""

    exit_code = 1


class ClusterConfigError(TinkerError):
    """Kubeconfig could not be loaded or the API client could not be built."""

    exit_code = 3


class DiscoveryError(TinkerError):
    """Pods could not be listed from the cluster."""

    exit_code = 3


class ExecFailedError(TinkerError):
    """A remote command kept failing after every retry."""

    exit_code = 1

    def __init__(self, pod: str, attempts: int, last_error: Optional[str] = None):
        self.pod = pod
        self.attempts = attempts
        self.last_error = last_error
        message = f"exec on pod {pod} failed after {attempts} attempts"
        if last_error:
            message += f": {last_error}"
        super().__init__(message)


class QuiesceError(TinkerError):
    """A supervising process could not be stopped."""

    exit_code = 6


class PreconditionError(TinkerError):
    """The cluster is not in a state where the operation is safe."""

    exit_code = 4


class VersionNotFoundError(PreconditionError):
    """The requested backup set is missing on at least one pod."""

    def __init__(self, version: str, pods):
        self.version = version
        self.pods = sorted(pods)
        super().__init__(
            f"backup version {version} not found on pods: {', '.join(self.pods)}"
        )


class InvalidVersionError(PreconditionError):
    """The backup label cannot be embedded in a shell program."""


class AnnotationError(TinkerError):
    """The debug marker could not be set or cleared on a pod."""

    exit_code = 5


class PodMutationError(TinkerError):
    """A pod could not be deleted."""

    exit_code = 5


class ReadinessTimeoutError(TinkerError):
    """Pods did not come back healthy within the allowed attempts."""

    exit_code = 7


class CheckFailedError(TinkerError):
    """At least one pod is not in the expected state."""

    exit_code = 8


# Exit code used when Back/Restore finished but some pods failed
PARTIAL_FAILURE_EXIT_CODE = 2

__all__ = [
    "TinkerError",
    "ClusterConfigError",
    "DiscoveryError",
    "ExecFailedError",
    "QuiesceError",
    "PreconditionError",
    "VersionNotFoundError",
    "InvalidVersionError",
    "AnnotationError",
    "PodMutationError",
    "ReadinessTimeoutError",
    "CheckFailedError",
    "PARTIAL_FAILURE_EXIT_CODE",
]
