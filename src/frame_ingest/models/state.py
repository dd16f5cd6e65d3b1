"""
Lifecycle State Models
======================

Discrete states used by the connection manager and the frame scheduler.

Connection State Machine:
    DISCONNECTED → CONNECTING → CONNECTED
    CONNECTED → CONNECTING        (read failure, steady-state recovery)
    CONNECTING → FAILED           (bounded initial budget exhausted, fatal)
    CONNECTING/CONNECTED → DISCONNECTED   (release on shutdown)

FAILED is terminal. Under the default unbounded recovery policy it is only
reachable before the first successful connection.
"""

from enum import Enum
from typing import Dict, FrozenSet


class ConnectionState(str, Enum):
    """
    Lifecycle of the stream source handle.

    Attributes:
        DISCONNECTED: No handle exists
        CONNECTING: An open attempt (or its backoff) is in progress
        CONNECTED: A valid handle is available to the scheduler
        FAILED: Initial attempt budget exhausted, no handle will be opened
    """

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    FAILED = "FAILED"


ALLOWED_TRANSITIONS: Dict[ConnectionState, FrozenSet[ConnectionState]] = {
    ConnectionState.DISCONNECTED: frozenset({ConnectionState.CONNECTING}),
    ConnectionState.CONNECTING: frozenset({
        ConnectionState.CONNECTED,
        ConnectionState.FAILED,
        ConnectionState.DISCONNECTED,
    }),
    ConnectionState.CONNECTED: frozenset({
        ConnectionState.CONNECTING,
        ConnectionState.DISCONNECTED,
    }),
    ConnectionState.FAILED: frozenset(),
}


class EmitResult(str, Enum):
    """
    Outcome of a single FrameScheduler tick.

    Attributes:
        EMITTED: Frame was due and persisted
        SKIPPED: Frame arrived before the pacing deadline and was discarded
        PERSIST_FAILURE: Frame was due but encoding or writing failed
        READ_FAILURE: No frame could be pulled from the handle
    """

    EMITTED = "EMITTED"
    SKIPPED = "SKIPPED"
    PERSIST_FAILURE = "PERSIST_FAILURE"
    READ_FAILURE = "READ_FAILURE"
