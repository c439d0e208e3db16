"""
Executor Module - Black Box Interface

Purpose: Run shell programs inside role containers
Interface: ExecGateway.exec(), ExecChannel protocol, KubernetesExecChannel
Hidden: Websocket handling, retry policy, output capture

Can be replaced with a different transport (kubectl subprocess, SSH) by
providing another ExecChannel.
"""

from .channel import ChannelError, ChannelOutput, ExecChannel, KubernetesExecChannel
from .gateway import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_INTERVAL, ExecGateway

__all__ = [
    "ChannelError",
    "ChannelOutput",
    "ExecChannel",
    "KubernetesExecChannel",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_RETRY_INTERVAL",
    "ExecGateway",
]
