import asyncio

import numpy as np
import pytest
import requests

from kirana_cart.detection.detection_client import HttpSnapshotSource, encode_jpeg, parse_detection_response
from kirana_cart.errors import SnapshotError
from kirana_cart.models import BoundingBox
from kirana_cart.services.capture_loop import CaptureLoopController


SUCCESS = {
    "status": "success",
    "data": {
        "predictions": [
            {"class": "Coke", "confidence": 0.91, "bbox": {"x": 0.1, "y": 0.2, "width": 0.3, "height": 0.4}},
            {"class": "Dettol", "confidence": 0.55},
        ]
    },
}


class FakeResponse:
    def __init__(self, status_code=200, payload=None, invalid_json=False):
        self.status_code = status_code
        self.payload = payload
        self.invalid_json = invalid_json

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value")
        return self.payload


class FakeHttpSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, files=None, timeout=None):
        self.requests.append((url, files, timeout))
        if self.error:
            raise self.error
        return self.response


class FakeCamera:
    def __init__(self, frame=None):
        self.frame = frame
        self.opened = False

    def open(self):
        self.opened = True

    def stop(self):
        self.opened = False

    def read(self):
        if self.frame is None:
            return False, None
        return True, self.frame


def make_source(response=None, error=None, frame=None):
    http = FakeHttpSession(response, error)
    source = HttpSnapshotSource(FakeCamera(frame), "http://detector/detect", timeout=2.0, session=http)
    return source, http


def test_parse_success_response():
    snapshot = parse_detection_response(SUCCESS)

    assert [p.class_name for p in snapshot] == ["Coke", "Dettol"]
    assert snapshot[0].box == BoundingBox(0.1, 0.2, 0.3, 0.4)
    assert snapshot[1].box == BoundingBox()


@pytest.mark.parametrize("payload", [
    {"status": "error", "message": "model not loaded"},
    {"status": "success", "data": {}},
    {"status": "success", "data": {"predictions": [{"confidence": 0.5}]}},
    {"status": "success", "data": {"predictions": ["Coke"]}},
    {"status": "success", "data": {"predictions": [{"class": "Coke", "confidence": 0.5, "bbox": [1, 2]}]}},
    ["not", "a", "dict"],
])
def test_parse_rejects_bad_responses(payload):
    with pytest.raises(SnapshotError):
        parse_detection_response(payload)


def test_detect_posts_jpeg_multipart():
    source, http = make_source(FakeResponse(payload=SUCCESS))

    snapshot = source.detect(b"jpeg-bytes")

    url, files, timeout = http.requests[0]
    assert url == "http://detector/detect"
    assert files == {"image": ("frame.jpg", b"jpeg-bytes", "image/jpeg")}
    assert timeout == 2.0
    assert len(snapshot) == 2


@pytest.mark.parametrize("response,error", [
    (FakeResponse(status_code=500), None),
    (FakeResponse(invalid_json=True), None),
    (None, requests.exceptions.ConnectionError("refused")),
    (None, requests.exceptions.Timeout("slow")),
])
def test_detect_failures_become_snapshot_errors(response, error):
    source, _ = make_source(response, error)
    with pytest.raises(SnapshotError):
        source.detect(b"jpeg-bytes")


def test_snapshot_captures_encodes_and_detects():
    frame = np.zeros((48, 64, 3), dtype=np.uint8)
    source, http = make_source(FakeResponse(payload=SUCCESS), frame=frame)

    snapshot = asyncio.run(source.snapshot())

    assert [p.class_name for p in snapshot] == ["Coke", "Dettol"]
    _, files, _ = http.requests[0]
    assert files["image"][1][:2] == b"\xff\xd8"


def test_snapshot_without_frame_fails():
    source, http = make_source(FakeResponse(payload=SUCCESS))

    with pytest.raises(SnapshotError):
        asyncio.run(source.snapshot())
    assert http.requests == []


def test_encode_jpeg_returns_jpeg_bytes():
    data = encode_jpeg(np.full((10, 10, 3), 255, dtype=np.uint8), quality=50)
    assert data.startswith(b"\xff\xd8")


def test_open_and_close_drive_the_camera():
    source, _ = make_source()
    source.open()
    assert source.camera.opened
    source.close()
    assert not source.camera.opened


def test_malformed_reply_counts_as_failed_cycle():
    frame = np.zeros((48, 64, 3), dtype=np.uint8)
    payload = {"status": "success", "data": {"predictions": ["Coke"]}}
    source, _ = make_source(FakeResponse(payload=payload), frame=frame)
    controller = CaptureLoopController(source, min_frames=1)

    assert asyncio.run(controller.tick()) is True
    assert controller.consecutive_failures == 1
    assert len(controller.window) == 0
    assert not controller.busy
