import asyncio

import pytest

from kirana_cart.errors import SnapshotError
from kirana_cart.models import BoundingBox, PriceCatalog, Prediction
from kirana_cart.services.capture_loop import DetectorStatus


def preds(*class_names):
    """One snapshot with a prediction per class name given"""
    return [Prediction(name, 0.9, BoundingBox(0.1, 0.1, 0.2, 0.2)) for name in class_names]


class FakeSource:
    """Scripted snapshot source; each script entry is a snapshot or a SnapshotError"""

    def __init__(self, script=(), gate=False):
        self.script = list(script)
        self.calls = 0
        self.opened = 0
        self.closed = 0
        self.use_gate = gate
        self.gate = None
        self.started = None

    def open(self):
        self.opened += 1

    def close(self):
        self.closed += 1

    async def snapshot(self):
        self.calls += 1
        if self.use_gate:
            self.started.set()
            await self.gate.wait()
        item = self.script.pop(0) if self.script else []
        if isinstance(item, SnapshotError):
            raise item
        return item

    def arm(self):
        """Create the gate events inside the running loop"""
        self.gate = asyncio.Event()
        self.started = asyncio.Event()


class FakeCapture:
    """Stands in for the capture loop controller in session tests"""

    def __init__(self):
        self.suspended = False
        self.history_cleared = 0
        self.publisher = None
        self.detector_status = DetectorStatus.OK

    def attach(self, publisher):
        self.publisher = publisher

    def suspend(self):
        self.suspended = True

    def resume(self):
        self.suspended = False

    def clear_history(self):
        self.history_cleared += 1


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def catalog():
    return PriceCatalog.from_prices({"Coke": 100, "Dettol": 25})


@pytest.fixture
def fake_capture():
    return FakeCapture()
