"""Tests for the retrying exec gateway."""

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import AsyncMock

import pytest

from conftest import NAMESPACE, ExecMocker, ExecResponse
from tinker.errors import ExecFailedError
from tinker.modules.executor import ExecGateway


@pytest.fixture
def mocker():
    return ExecMocker()


@pytest.mark.asyncio
async def test_exec_success_first_attempt(mocker):
    """Test a command that succeeds immediately"""
    sleep = AsyncMock()
    mocker.register("ls", ExecResponse(stdout="5.1.bat\n5.2.bat\n"))
    gateway = ExecGateway(mocker, NAMESPACE, sleep=sleep)

    result = await gateway.exec("basic-pd-0", "pd", ["sh", "-c", "ls /var/lib/pd"])

    assert result.stdout == "5.1.bat\n5.2.bat\n"
    assert result.attempts == 1
    assert result.retries == 0
    assert result.pod == "basic-pd-0"
    assert result.container == "pd"
    sleep.assert_not_called()

    call = mocker.calls[0]
    assert call.namespace == NAMESPACE
    assert call.container == "pd"
    assert call.argv == ["sh", "-c", "ls /var/lib/pd"]


@pytest.mark.asyncio
async def test_exec_retries_transport_errors(mocker):
    """Test that transport errors are retried with a fixed delay"""
    sleep = AsyncMock()
    mocker.register(
        "kill",
        [ExecResponse(error="connection reset"), ExecResponse(error="handshake status 500"), ExecResponse()],
    )
    gateway = ExecGateway(mocker, NAMESPACE, max_attempts=5, retry_interval=60, sleep=sleep)

    result = await gateway.exec("basic-tidb-0", "tidb", ["sh", "-c", "kill 1"])

    assert result.attempts == 3
    assert result.retries == 2
    assert len(mocker.calls) == 3
    assert sleep.await_count == 2
    sleep.assert_awaited_with(60)


@pytest.mark.asyncio
async def test_exec_retries_non_zero_exit(mocker):
    """Test that a failing command counts as a failed attempt"""
    sleep = AsyncMock()
    mocker.register("cp", [ExecResponse(stderr="No space left on device", return_code=1), ExecResponse(stdout="ok")])
    gateway = ExecGateway(mocker, NAMESPACE, sleep=sleep)

    result = await gateway.exec("basic-tikv-0", "tikv", ["sh", "-c", "cp a b"])

    assert result.stdout == "ok"
    assert result.attempts == 2


@pytest.mark.asyncio
async def test_exec_gives_up_after_max_attempts(mocker):
    """Test that exhausting retries raises with the last error"""
    sleep = AsyncMock()
    mocker.register("cp", ExecResponse(stderr="Read-only file system", return_code=1))
    gateway = ExecGateway(mocker, NAMESPACE, max_attempts=5, retry_interval=60, sleep=sleep)

    with pytest.raises(ExecFailedError) as exc_info:
        await gateway.exec("basic-tikv-1", "tikv", ["sh", "-c", "cp a b"])

    error = exc_info.value
    assert error.pod == "basic-tikv-1"
    assert error.attempts == 5
    assert "exit code 1" in error.last_error
    assert "Read-only file system" in str(error)
    assert len(mocker.calls) == 5
    # No sleep after the final attempt
    assert sleep.await_count == 4


@pytest.mark.asyncio
async def test_exec_single_attempt(mocker):
    """Test a gateway configured without retries"""
    sleep = AsyncMock()
    mocker.register("ls", ExecResponse(error="pod not found"))
    gateway = ExecGateway(mocker, NAMESPACE, max_attempts=1, sleep=sleep)

    with pytest.raises(ExecFailedError) as exc_info:
        await gateway.exec("gone-0", "pd", ["sh", "-c", "ls"])

    assert exc_info.value.attempts == 1
    assert exc_info.value.last_error == "pod not found"
    sleep.assert_not_called()


def test_invalid_max_attempts(mocker):
    """Test that at least one attempt is required"""
    with pytest.raises(ValueError):
        ExecGateway(mocker, NAMESPACE, max_attempts=0)


@pytest.mark.asyncio
async def test_exec_runs_on_given_executor(mocker):
    """Test that the transport call uses the caller's thread pool"""
    threads = []
    mocker.register("ls", ExecResponse(), hook=lambda call: threads.append(threading.current_thread().name))
    gateway = ExecGateway(mocker, NAMESPACE, sleep=AsyncMock())

    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="role-pool") as executor:
        await gateway.exec("basic-pd-0", "pd", ["sh", "-c", "ls"], executor=executor)

    assert threads[0].startswith("role-pool")
