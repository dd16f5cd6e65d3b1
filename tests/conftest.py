"""
Test Configuration
==================

Pytest fixtures and test doubles for the frame ingest service.

The doubles replace the camera, the clocks and the disk so the control
loop can be driven deterministically:
    - FakeClock: manually advanced monotonic clock
    - ScriptedFrameSource: FrameSource whose opens and reads follow a script
    - RecordingWriter: in-memory stand-in for FrameWriter
"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional

import numpy as np
import pytest

from frame_ingest.config import CaptureConfig, OutputConfig, Settings, StreamConfig
from frame_ingest.errors import PersistFailure, SourceOpenError
from frame_ingest.shutdown import CancellationToken
from frame_ingest.stream.retry import RetryPolicy


# Every environment key read by frame_ingest.config.
INGEST_ENV_VARS = (
    "RTSP_URL",
    "OUTPUT_DIR",
    "TARGET_FPS",
    "FRAME_INTERVAL",
    "JPEG_QUALITY",
    "INGEST_MAX_CONNECT_ATTEMPTS",
    "INGEST_LOG_LEVEL",
    "INGEST_LOG_FORMAT",
    "INGEST_CONFIG",
)


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def wall(self) -> datetime:
        """Wall-clock view of the same timeline, for filenames."""
        return datetime(2024, 1, 1, 12, 0, 0) + timedelta(seconds=self.now)


class FakeHandle:
    """Opaque handle handed out by ScriptedFrameSource."""

    def __init__(self, number: int) -> None:
        self.number = number
        self.closed = False
        self.buffer_size: Optional[int] = None

    def __repr__(self) -> str:
        return f"FakeHandle({self.number}, closed={self.closed})"


class ScriptedFrameSource:
    """
    FrameSource whose behaviour is scripted per call.

    Args:
        opens: Sequence of booleans consumed by open(); True opens, False
            raises SourceOpenError. When exhausted, `default_open` applies.
        reads: Sequence consumed by read(); an ndarray is returned as-is,
            None simulates a failed read. When exhausted, a small image is
            returned.
        fps: Native FPS reported for every handle
        clock: If given, advanced by `read_step` on every read
        read_step: Seconds each read takes on `clock`
        on_read: Called with the source after every read
    """

    def __init__(
        self,
        opens: Optional[List[bool]] = None,
        reads: Optional[list] = None,
        fps: float = 25.0,
        default_open: bool = True,
        clock: Optional[FakeClock] = None,
        read_step: float = 0.0,
        on_read: Optional[Callable[["ScriptedFrameSource"], None]] = None,
    ) -> None:
        self.opens = list(opens or [])
        self.reads = list(reads or [])
        self.fps = fps
        self.default_open = default_open
        self.clock = clock
        self.read_step = read_step
        self.on_read = on_read

        self.handles: List[FakeHandle] = []
        self.open_calls = 0
        self.read_calls = 0

    @property
    def live_handles(self) -> List[FakeHandle]:
        return [h for h in self.handles if not h.closed]

    def open(self, endpoint: str) -> FakeHandle:
        self.open_calls += 1
        outcome = self.opens.pop(0) if self.opens else self.default_open
        if not outcome:
            raise SourceOpenError(f"scripted failure opening {endpoint}")
        handle = FakeHandle(len(self.handles))
        self.handles.append(handle)
        return handle

    def read(self, handle: FakeHandle) -> Optional[np.ndarray]:
        assert not handle.closed, "read from a closed handle"
        self.read_calls += 1
        if self.clock is not None:
            self.clock.advance(self.read_step)
        image = self.reads.pop(0) if self.reads else make_image()
        if self.on_read is not None:
            self.on_read(self)
        return image

    def close(self, handle: FakeHandle) -> None:
        handle.closed = True

    def configure_buffering(self, handle: FakeHandle, depth: int) -> None:
        handle.buffer_size = depth

    def native_fps(self, handle: FakeHandle) -> float:
        return self.fps


class BrokenBufferingSource(ScriptedFrameSource):
    """ScriptedFrameSource whose n-th configure_buffering call raises."""

    def __init__(self, fail_on_call: int, **kwargs) -> None:
        super().__init__(**kwargs)
        self.fail_on_call = fail_on_call
        self.configure_calls = 0

    def configure_buffering(self, handle: FakeHandle, depth: int) -> None:
        self.configure_calls += 1
        if self.configure_calls == self.fail_on_call:
            raise RuntimeError("backend rejected CAP_PROP_BUFFERSIZE")
        super().configure_buffering(handle, depth)


class RecordingWriter:
    """FrameWriter stand-in that records filenames instead of writing."""

    def __init__(self, fail_on: Optional[set] = None, directory: str = "memory://frames") -> None:
        self.fail_on = fail_on or set()
        self.directory = directory
        self.calls = 0
        self.filenames: List[str] = []

    def ensure_directory(self) -> str:
        return self.directory

    def persist(self, frame, filename: str) -> str:
        call = self.calls
        self.calls += 1
        if call in self.fail_on:
            raise PersistFailure(f"scripted failure for {filename}")
        self.filenames.append(filename)
        return filename


def make_image(height: int = 8, width: int = 8) -> np.ndarray:
    """Small BGR test image."""
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:, :, 1] = 128
    return image


@pytest.fixture
def clock():
    """Provide a FakeClock starting at t=0."""
    return FakeClock()


@pytest.fixture
def token():
    """Provide a fresh CancellationToken."""
    return CancellationToken()


@pytest.fixture
def instant_policies():
    """Provide (initial, recovery) retry policies with zero waits."""
    return (
        RetryPolicy(backoff_seconds=0.0, max_attempts=3),
        RetryPolicy(backoff_seconds=0.0, settle_seconds=0.0, max_attempts=None),
    )


@pytest.fixture
def make_settings(tmp_path):
    """Build Settings with zero backoff, pointing at a temporary directory."""

    def _make(target_fps: float = 8.0, max_connect_attempts: int = 3, **output) -> Settings:
        return Settings(
            stream=StreamConfig(
                url="rtsp://test-camera:8554/stream",
                max_connect_attempts=max_connect_attempts,
                connect_backoff_seconds=0.0,
                reconnect_settle_seconds=0.0,
                reconnect_backoff_seconds=0.0,
            ),
            capture=CaptureConfig(target_fps=target_fps),
            output=OutputConfig(
                directory=str(output.pop("directory", tmp_path / "frames")),
                **output,
            ),
        )

    return _make
