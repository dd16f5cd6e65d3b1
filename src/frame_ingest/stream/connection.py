"""
Connection Manager
==================

Lifecycle of the stream source handle.

This module provides the ConnectionManager class which:
    - Opens the endpoint with a bounded attempt budget at startup
    - Configures minimal decoder buffering after every open
    - Validates the reported native frame rate
    - Reopens the stream after read failures, without an attempt ceiling
    - Owns the only handle; a handle is never reused across failures

Design Rules:
    - All waits go through the CancellationToken so shutdown is honoured
      during backoff
    - State changes only through _transition(), checked against
      ALLOWED_TRANSITIONS
    - Only ConnectFailure escapes; open errors are logged and retried
"""

import logging
from typing import Any, Optional

from frame_ingest.errors import ConnectFailure, SourceOpenError
from frame_ingest.models.state import ALLOWED_TRANSITIONS, ConnectionState
from frame_ingest.models.stats import ConnectionMetrics
from frame_ingest.shutdown import CancellationToken
from frame_ingest.stream.retry import RetryPolicy
from frame_ingest.stream.source import FrameSource


logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Owner of the stream source handle.

    Attributes:
        endpoint: Stream URI, fixed for the process lifetime
        source: Decoding backend used to open, read and close handles
        initial_policy: Bounded policy for acquire()
        recovery_policy: Policy for recover(), unbounded by default
        metrics: Attempt and reconnect counters

    Example:
        manager = ConnectionManager(
            endpoint="rtsp://camera:8554/stream",
            source=OpenCVFrameSource(),
            token=token,
        )
        handle = manager.acquire()      # raises ConnectFailure when exhausted

        # after a failed read
        handle = manager.recover()      # None means "loop and try again"
    """

    def __init__(
        self,
        endpoint: str,
        source: FrameSource,
        token: CancellationToken,
        initial_policy: Optional[RetryPolicy] = None,
        recovery_policy: Optional[RetryPolicy] = None,
        buffer_size: int = 1,
        default_fps: float = 30.0,
        max_valid_fps: float = 120.0,
    ) -> None:
        """
        Initialize connection manager.

        Args:
            endpoint: Stream URI
            source: FrameSource implementation
            token: Cancellation token polled during waits
            initial_policy: Defaults to 10 attempts, 3s backoff
            recovery_policy: Defaults to 1s settle, 2s backoff, no ceiling
            buffer_size: Decoder buffer depth requested after each open
            default_fps: Substitute for out-of-range native FPS
            max_valid_fps: Upper bound of a plausible native FPS
        """
        if buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")
        if default_fps <= 0 or default_fps > max_valid_fps:
            raise ValueError("default_fps must be in (0, max_valid_fps]")

        self.endpoint = endpoint
        self.source = source
        self.token = token
        self.initial_policy = initial_policy or RetryPolicy.initial()
        self.recovery_policy = recovery_policy or RetryPolicy.recovery()
        self.buffer_size = buffer_size
        self.default_fps = default_fps
        self.max_valid_fps = max_valid_fps

        self._state = ConnectionState.DISCONNECTED
        self._handle: Optional[Any] = None
        self._consecutive_recover_failures = 0

        self.metrics = ConnectionMetrics()

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def handle(self) -> Optional[Any]:
        """Live handle, or None unless CONNECTED."""
        return self._handle

    @property
    def connected(self) -> bool:
        """Whether a live handle is available."""
        return self._state is ConnectionState.CONNECTED

    @property
    def native_fps(self) -> Optional[float]:
        """Validated native FPS of the current stream."""
        return self.metrics.native_fps

    def acquire(self) -> Optional[Any]:
        """
        Open the stream for the first time.

        Retries with the initial policy's fixed backoff until the stream
        opens or the budget is exhausted.

        Returns:
            Live handle, or None if shutdown was requested before a
            connection was made

        Raises:
            ConnectFailure: If every attempt in the budget failed
        """
        if self._handle is not None:
            return self._handle

        policy = self.initial_policy
        self._transition(ConnectionState.CONNECTING)
        failures = 0

        while not self.token.cancelled:
            logger.info("Attempting to connect to camera...")
            if self.token.wait(policy.settle_seconds):
                break

            handle = self._try_open()
            if handle is not None:
                logger.info("Successfully connected to camera!")
                return handle

            failures += 1
            logger.error(
                f"Failed to open stream. Attempt {policy.describe(failures)}"
            )
            if policy.exhausted(failures):
                self._transition(ConnectionState.FAILED)
                raise ConnectFailure(self.endpoint, failures)

            if self.token.wait(policy.backoff_seconds):
                break

        logger.info("Shutdown requested before a connection was established")
        self._transition(ConnectionState.DISCONNECTED)
        return None

    def recover(self) -> Optional[Any]:
        """
        Replace a failed handle with a fresh one.

        Releases the stale handle, waits the settle interval and tries a
        single reopen. On failure waits the backoff interval and returns
        None; the caller loops and calls recover() again.

        Returns:
            Fresh live handle, or None if the reopen failed or shutdown
            was requested

        Raises:
            ConnectFailure: Only if the recovery policy sets a ceiling
                and it has been reached
        """
        policy = self.recovery_policy

        self._close_handle()
        self._transition(ConnectionState.CONNECTING)

        if self.token.wait(policy.settle_seconds):
            return None

        handle = self._try_open()
        if handle is not None:
            self.metrics.reconnect_count += 1
            self._consecutive_recover_failures = 0
            logger.info(
                f"Reconnected to stream (reconnect {self.metrics.reconnect_count})"
            )
            return handle

        self._consecutive_recover_failures += 1
        self.metrics.recover_failures += 1
        logger.warning(
            f"Reconnect failed (attempt "
            f"{policy.describe(self._consecutive_recover_failures)}), "
            f"retrying in {policy.backoff_seconds:.1f}s"
        )
        if policy.exhausted(self._consecutive_recover_failures):
            self._transition(ConnectionState.FAILED)
            raise ConnectFailure(self.endpoint, self._consecutive_recover_failures)

        self.token.wait(policy.backoff_seconds)
        return None

    def release(self) -> None:
        """Close the handle if one is open and mark the manager disconnected."""
        self._close_handle()
        if self._state not in (ConnectionState.DISCONNECTED, ConnectionState.FAILED):
            self._transition(ConnectionState.DISCONNECTED)

    def _try_open(self) -> Optional[Any]:
        """Attempt a single open; on success configure and adopt the handle."""
        self.metrics.connect_attempts += 1
        try:
            handle = self.source.open(self.endpoint)
        except SourceOpenError as e:
            logger.debug(f"Open failed: {e}")
            return None

        try:
            self.source.configure_buffering(handle, self.buffer_size)
            native_fps = self._validate_fps(self.source.native_fps(handle))
        except Exception as e:
            logger.warning(f"Discarding stream handle after setup error: {e}")
            self.source.close(handle)
            return None

        self.metrics.native_fps = native_fps
        self.metrics.successful_opens += 1

        self._handle = handle
        self._transition(ConnectionState.CONNECTED)
        return handle

    def _close_handle(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        self.source.close(handle)

    def _validate_fps(self, reported: float) -> float:
        """Replace out-of-range (or NaN) native FPS with the default."""
        if 0 < reported <= self.max_valid_fps:
            logger.info(f"Camera FPS reported: {reported}")
            return reported
        logger.warning(
            f"Camera reported implausible FPS {reported}, "
            f"using default {self.default_fps}"
        )
        return self.default_fps

    def _transition(self, new_state: ConnectionState) -> None:
        if new_state is self._state:
            return
        if new_state not in ALLOWED_TRANSITIONS[self._state]:
            raise RuntimeError(
                f"Illegal connection state transition: "
                f"{self._state.value} -> {new_state.value}"
            )
        logger.debug(f"Connection state: {self._state.value} -> {new_state.value}")
        self._state = new_state
