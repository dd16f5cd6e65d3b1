"""
Frame Scheduler Tests
=====================

Pacing, subsampling, failure handling and the throughput heartbeat.

Timing uses a FakeClock advanced by 1/64 s per read (a 64 FPS source) so
every deadline is exactly representable.
"""

import logging
from datetime import datetime

import numpy as np
import pytest

from conftest import FakeClock, RecordingWriter, ScriptedFrameSource
from frame_ingest.models.state import EmitResult
from frame_ingest.scheduling.scheduler import FrameScheduler


SOURCE_FPS = 64


def parse_stamp(filename: str) -> datetime:
    stamp = filename[len("frame_"):-len(".jpg")]
    return datetime.strptime(stamp, "%Y%m%d_%H%M%S_%f")


@pytest.fixture
def rig(clock):
    """Build (scheduler, source, writer, handle) for a given target FPS."""

    def _rig(target_fps=8.0, reads=None, read_step=1.0 / SOURCE_FPS, fail_on=None):
        source = ScriptedFrameSource(reads=reads, clock=clock, read_step=read_step)
        writer = RecordingWriter(fail_on=fail_on)
        scheduler = FrameScheduler(
            source,
            writer,
            target_fps=target_fps,
            clock=clock,
            wall_clock=clock.wall,
        )
        return scheduler, source, writer, source.open("rtsp://test")

    return _rig


class TestPacing:
    """Deadline-based rate limiting."""

    @pytest.mark.parametrize("fps", [1.0, 8.0, 30.0, 0.2])
    def test_interval_derivation(self, rig, fps):
        scheduler, *_ = rig(target_fps=fps)
        assert scheduler.target_interval_ms == pytest.approx(1000.0 / fps)

    def test_first_frame_is_emitted(self, rig):
        scheduler, _, writer, handle = rig()
        assert scheduler.tick(handle) is EmitResult.EMITTED
        assert len(writer.filenames) == 1
        assert scheduler.stats.frames_saved == 1

    def test_frames_before_deadline_are_skipped(self, rig):
        scheduler, _, writer, handle = rig()
        results = [scheduler.tick(handle) for _ in range(8)]

        assert results[0] is EmitResult.EMITTED
        assert all(r is EmitResult.SKIPPED for r in results[1:])
        assert scheduler.stats.frames_skipped == 7

    def test_subsampling_ratio(self, rig):
        scheduler, _, writer, handle = rig(target_fps=8.0)
        pulled = 640

        for _ in range(pulled):
            scheduler.tick(handle)

        assert scheduler.stats.frames_pulled == pulled
        assert scheduler.stats.frames_saved == pulled * 8 // SOURCE_FPS
        assert scheduler.stats.frames_saved + scheduler.stats.frames_skipped == pulled

    def test_source_slower_than_target_keeps_everything(self, rig):
        scheduler, _, writer, handle = rig(target_fps=30.0, read_step=0.1)
        for _ in range(20):
            assert scheduler.tick(handle) is EmitResult.EMITTED
        assert scheduler.stats.frames_saved == 20

    def test_emitted_frames_respect_interval(self, rig):
        scheduler, _, writer, handle = rig(target_fps=8.0)
        for _ in range(300):
            scheduler.tick(handle)

        stamps = [parse_stamp(name) for name in writer.filenames]
        gaps = [(b - a).total_seconds() * 1000 for a, b in zip(stamps, stamps[1:])]
        assert gaps
        assert min(gaps) >= scheduler.target_interval_ms

    def test_deadline_rebased_after_stall(self, rig, clock):
        scheduler, _, writer, handle = rig(target_fps=8.0, read_step=0.0)

        assert scheduler.tick(handle) is EmitResult.EMITTED
        clock.advance(10.0)
        assert scheduler.tick(handle) is EmitResult.EMITTED

        # No catch-up burst: the next frame right after the stall is dropped.
        clock.advance(1.0 / SOURCE_FPS)
        assert scheduler.tick(handle) is EmitResult.SKIPPED
        assert scheduler.pacing.next_deadline == pytest.approx(10.0 + 0.125)

    def test_deadline_never_behind_last_emit(self, rig):
        scheduler, _, _, handle = rig(target_fps=20.0)
        for _ in range(200):
            scheduler.tick(handle)
            if scheduler.pacing.last_emit_time is not None:
                assert scheduler.pacing.next_deadline >= scheduler.pacing.last_emit_time

    def test_invalid_target_fps(self, clock):
        with pytest.raises(ValueError):
            FrameScheduler(ScriptedFrameSource(), RecordingWriter(), target_fps=0.0, clock=clock)


class TestFailures:
    """Read and persist failures."""

    def test_failed_read(self, rig):
        scheduler, _, writer, handle = rig(reads=[None])
        assert scheduler.tick(handle) is EmitResult.READ_FAILURE
        assert scheduler.stats.read_failures == 1
        assert scheduler.stats.frames_pulled == 0
        assert writer.calls == 0

    def test_empty_frame_is_a_read_failure(self, rig):
        empty = np.zeros((0, 0, 3), dtype=np.uint8)
        scheduler, _, writer, handle = rig(reads=[empty])
        assert scheduler.tick(handle) is EmitResult.READ_FAILURE
        assert writer.calls == 0

    def test_persist_failure_not_counted(self, rig):
        scheduler, _, writer, handle = rig(fail_on={0})

        assert scheduler.tick(handle) is EmitResult.PERSIST_FAILURE
        assert scheduler.stats.frames_saved == 0
        assert scheduler.stats.persist_failures == 1
        assert scheduler.pacing.emitted_this_second == 0

    def test_persist_failure_still_advances_deadline(self, rig):
        scheduler, _, writer, handle = rig(fail_on={0})
        scheduler.tick(handle)

        assert scheduler.tick(handle) is EmitResult.SKIPPED
        for _ in range(7):
            scheduler.tick(handle)
        assert scheduler.stats.frames_saved == 1

    def test_statistics_never_decrease(self, rig):
        reads = [None if i % 7 == 3 else np.ones((4, 4, 3), dtype=np.uint8) for i in range(100)]
        scheduler, _, _, handle = rig(reads=reads, fail_on={2, 5})

        previous = scheduler.stats.to_dict()
        for _ in range(100):
            scheduler.tick(handle)
            current = scheduler.stats.to_dict()
            assert all(current[key] >= previous[key] for key in current)
            previous = current


class TestHeartbeat:
    """Once-per-second throughput report."""

    def test_reports_and_resets(self, rig, caplog):
        scheduler, _, _, handle = rig(target_fps=8.0)

        with caplog.at_level(logging.INFO, logger="frame_ingest.scheduling.scheduler"):
            for _ in range(SOURCE_FPS):
                scheduler.tick(handle)

        assert "Captured 8 frames in the last second" in caplog.text
        assert scheduler.pacing.emitted_this_second == 0
        assert scheduler.pacing.window_start == pytest.approx(1.0)

    def test_no_report_within_first_second(self, rig, caplog):
        scheduler, _, _, handle = rig(target_fps=8.0)

        with caplog.at_level(logging.INFO, logger="frame_ingest.scheduling.scheduler"):
            for _ in range(SOURCE_FPS - 1):
                scheduler.tick(handle)

        assert "in the last second" not in caplog.text


class TestFilenames:
    """Filenames produced by the scheduler."""

    def test_filenames_sorted_by_time(self, rig):
        scheduler, _, writer, handle = rig(target_fps=30.0)
        for _ in range(400):
            scheduler.tick(handle)

        assert writer.filenames == sorted(writer.filenames)
        assert len(set(writer.filenames)) == len(writer.filenames)

    def test_filename_uses_wall_clock(self):
        clock = FakeClock()
        writer = RecordingWriter()
        source = ScriptedFrameSource()
        scheduler = FrameScheduler(
            source,
            writer,
            target_fps=1.0,
            clock=clock,
            wall_clock=lambda: datetime(2023, 7, 4, 9, 5, 3, 42000),
        )
        scheduler.tick(source.open("rtsp://test"))
        assert writer.filenames == ["frame_20230704_090503_042.jpg"]
