# capture_loop.py
import asyncio
import logging
import time
from enum import Enum
from typing import Callable, Optional

from ..config import CaptureSettings
from ..detection.history import HistoryWindow
from ..detection.stabilizer import stabilize
from ..errors import CycleInFlightError, SnapshotError
from ..models.detection import tally_snapshot

logger = logging.getLogger(__name__)


class DetectorStatus(Enum):
    OK = "ok"
    UNREACHABLE = "unreachable"


class CycleGuard:
    """
    Single-slot in-flight marker for capture cycles

    Entering the guard while a cycle is already in flight raises
    CycleInFlightError, so at most one cycle can ever run at a time.
    """

    def __init__(self):
        self._in_flight = False

    @property
    def busy(self) -> bool:
        return self._in_flight

    def __enter__(self):
        if self._in_flight:
            raise CycleInFlightError("A capture cycle is already in flight")
        self._in_flight = True
        return self

    def __exit__(self, exc_type, exc, tb):
        self._in_flight = False
        return False


class ThroughputMeter:
    """Rolling one-second frame counter"""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self.reset()

    def reset(self) -> None:
        self.fps = 0
        self.total_frames = 0
        self._frame_count = 0
        self._last_update = self.clock()

    def record(self) -> None:
        """Count one completed cycle and roll the window every second"""
        self._frame_count += 1
        self.total_frames += 1
        now = self.clock()
        if now - self._last_update >= 1.0:
            self.fps = self._frame_count
            self._frame_count = 0
            self._last_update = now


class CaptureLoopController:
    """
    Drives snapshot acquisition and keeps the history window current

    The controller is the only writer of its history window. Each completed
    cycle pushes one tally, recomputes the stable cart and hands it to the
    attached publisher (normally the CartSession).
    """

    def __init__(
        self,
        source,
        history_length: int = 10,
        min_frames: int = 3,
        max_consecutive_failures: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize controller

        Args:
            source: Object with an async snapshot() returning predictions,
                    raising SnapshotError on failure
            history_length: History window capacity
            min_frames: Minimum presence frames for a stable item
            max_consecutive_failures: Failures in a row before the detector
                                      is reported unreachable
            clock: Monotonic clock used for throughput
        """
        self.source = source
        self.window = HistoryWindow(history_length)
        self.min_frames = min_frames
        self.max_consecutive_failures = max_consecutive_failures
        self.guard = CycleGuard()
        self.throughput = ThroughputMeter(clock)
        self.suspended = False
        self.consecutive_failures = 0
        self.detector_status = DetectorStatus.OK
        self.publisher = None
        # Bumped whenever the window is emptied; a cycle spanning a bump is stale
        self._generation = 0

    @classmethod
    def from_settings(cls, source, settings: CaptureSettings) -> "CaptureLoopController":
        return cls(
            source,
            history_length=settings.history_length,
            min_frames=settings.min_detection_frames,
            max_consecutive_failures=settings.max_consecutive_failures
        )

    @property
    def busy(self) -> bool:
        return self.guard.busy

    def attach(self, publisher) -> None:
        """Set the receiver of stable carts and detector status changes"""
        self.publisher = publisher

    async def tick(self) -> bool:
        """
        Run one capture cycle unless one is in flight or capture is suspended

        Returns:
            True if a cycle ran, False if the tick was dropped
        """
        if self.suspended or self.guard.busy:
            logger.debug("Tick dropped (busy or suspended)")
            return False

        with self.guard:
            await self._run_cycle()
        return True

    async def _run_cycle(self) -> None:
        generation = self._generation
        try:
            snapshot = await self.source.snapshot()
        except SnapshotError as e:
            if self._stale(generation):
                return
            self._record_failure(e)
        else:
            if self._stale(generation):
                return
            self._record_success()
            tally = tally_snapshot(snapshot)
            self.window.push(tally)
            cart = stabilize(self.window.snapshot(), self.min_frames)
            logger.debug(f"Frame tally {dict(tally)} -> stable {cart}")
            if self.publisher is not None:
                self.publisher.publish(cart, snapshot)
        finally:
            self.throughput.record()

    def _stale(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug("History cleared while cycle was in flight, result dropped")
            return True
        return False

    def _record_failure(self, error: SnapshotError) -> None:
        self.consecutive_failures += 1
        logger.warning(f"Snapshot failed ({self.consecutive_failures} in a row): {error}")

        if (self.consecutive_failures >= self.max_consecutive_failures
                and self.detector_status is not DetectorStatus.UNREACHABLE):
            logger.error(f"Detector unreachable after {self.consecutive_failures} consecutive failures")
            self._set_detector_status(DetectorStatus.UNREACHABLE)

    def _record_success(self) -> None:
        self.consecutive_failures = 0
        if self.detector_status is not DetectorStatus.OK:
            logger.info("Detector reachable again")
            self._set_detector_status(DetectorStatus.OK)

    def _set_detector_status(self, status: DetectorStatus) -> None:
        self.detector_status = status
        if self.publisher is not None:
            self.publisher.report_detector(status)

    def suspend(self) -> None:
        """Stop new cycles from starting; a cycle in flight still finishes"""
        self.suspended = True

    def resume(self) -> None:
        self.suspended = False

    def clear_history(self) -> None:
        self.window.clear()
        self._generation += 1

    def reset(self) -> None:
        """Start over from an empty window and fresh counters"""
        self.window.clear()
        self._generation += 1
        self.throughput.reset()
        self.consecutive_failures = 0
        self.detector_status = DetectorStatus.OK

    def stats(self) -> dict:
        return {
            'fps': self.throughput.fps,
            'total_frames': self.throughput.total_frames,
            'consecutive_failures': self.consecutive_failures,
            'detector_status': self.detector_status.value,
            'busy': self.busy,
            'suspended': self.suspended,
            'history_length': len(self.window)
        }


class CaptureScheduler:
    """Fires the controller's tick() on a fixed period"""

    def __init__(self, controller: CaptureLoopController, period: float = 0.5):
        self.controller = controller
        self.period = period
        self._timer: Optional[asyncio.Task] = None
        self._cycle: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def start(self) -> None:
        if self.running:
            return
        self._timer = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Capture timer started ({self.period * 1000:.0f} ms period)")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.period)
            self._fire()

    def _fire(self) -> None:
        if self.controller.busy:
            logger.debug("Previous cycle still in flight, tick dropped")
            return
        self._cycle = asyncio.get_running_loop().create_task(self.controller.tick())
        self._cycle.add_done_callback(self._on_cycle_done)

    def _on_cycle_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Capture cycle crashed: {error}", exc_info=error)

    async def stop(self) -> None:
        """Stop the timer and wait for a cycle already in flight to finish"""
        if self._timer is not None:
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
            self._timer = None
            logger.info("Capture timer stopped")

        if self._cycle is not None and not self._cycle.done():
            await asyncio.wait({self._cycle})
        self._cycle = None
