"""Remote exec with bounded retry and output capture."""

import asyncio
import functools
import logging
from concurrent.futures import Executor
from typing import Awaitable, Callable, List, Optional

from ...errors import ExecFailedError
from ..api import ExecResult
from .channel import ChannelError, ExecChannel

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_RETRY_INTERVAL = 60.0


class ExecGateway:
    """The only component that talks to the exec transport."""

    def __init__(
        self,
        channel: ExecChannel,
        namespace: str,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """
        Initialize gateway.

        Args:
            channel: Transport used to run commands
            namespace: Namespace of every target pod
            max_attempts: Attempts per command before giving up
            retry_interval: Seconds to wait between attempts
            sleep: Awaitable sleep, replaced in tests
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.channel = channel
        self.namespace = namespace
        self.max_attempts = max_attempts
        self.retry_interval = retry_interval
        self._sleep = sleep or asyncio.sleep

    async def exec(
        self, pod: str, container: str, argv: List[str], executor: Optional[Executor] = None
    ) -> ExecResult:
        """
        Run a command in a container, retrying transient failures.

        A transport error and a non-zero exit code both count as a failed
        attempt. The blocking transport call runs in a worker thread so
        concurrent pod tasks do not block each other.

        Args:
            pod: Target pod name
            container: Target container name
            argv: Command to run
            executor: Thread pool for the transport call, the loop's
                default pool when omitted

        Returns:
            ExecResult of the first successful attempt

        Raises:
            ExecFailedError: When every attempt failed
        """
        last_error: Optional[str] = None
        loop = asyncio.get_running_loop()
        run = functools.partial(self.channel.run, pod, container, self.namespace, argv)

        for attempt in range(1, self.max_attempts + 1):
            try:
                output = await loop.run_in_executor(executor, run)
            except ChannelError as e:
                last_error = str(e)
                logger.error(f"Exec on pod {pod} failed: {e}")
            else:
                if output.return_code == 0:
                    if output.stderr:
                        logger.debug(f"Exec on pod {pod} wrote to stderr: {output.stderr.strip()}")
                    return ExecResult(
                        pod=pod,
                        container=container,
                        stdout=output.stdout,
                        stderr=output.stderr,
                        return_code=output.return_code,
                        attempts=attempt,
                    )
                last_error = f"exit code {output.return_code}"
                if output.stderr:
                    last_error += f": {output.stderr.strip()}"
                logger.error(
                    f"Exec on pod {pod} exited with {output.return_code}, "
                    f"stdout: {output.stdout.strip()!r}, stderr: {output.stderr.strip()!r}"
                )

            if attempt < self.max_attempts:
                logger.warning(
                    f"Exec on pod {pod} will retry in {self.retry_interval:g}s "
                    f"(attempt {attempt}/{self.max_attempts})"
                )
                await self._sleep(self.retry_interval)

        raise ExecFailedError(pod, self.max_attempts, last_error)
