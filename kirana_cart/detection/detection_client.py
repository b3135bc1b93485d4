# detection_client.py
import asyncio
import logging
from typing import Optional

import cv2
import requests

from ..errors import SnapshotError
from ..models.detection import DetectionSnapshot, Prediction
from .video_stream import VideoStream

logger = logging.getLogger(__name__)


def encode_jpeg(frame, quality: int = 90) -> bytes:
    """Encode a BGR frame as JPEG bytes"""
    ok, buffer = cv2.imencode('.jpg', frame, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    if not ok:
        raise SnapshotError("Failed to encode frame as JPEG")
    return buffer.tobytes()


def parse_detection_response(payload) -> DetectionSnapshot:
    """
    Turn a detector response body into a snapshot

    Args:
        payload: Decoded JSON, {'status': 'success', 'data': {'predictions': [...]}}

    Returns:
        Predictions in detector order

    Raises:
        SnapshotError: status is not 'success' or the body is malformed
    """
    if not isinstance(payload, dict):
        raise SnapshotError(f"Unexpected detector response: {payload!r}")

    status = payload.get('status')
    if status != 'success':
        raise SnapshotError(f"Detector returned status {status!r}")

    try:
        predictions = payload['data']['predictions']
        return [Prediction.from_dict(p) for p in predictions]
    except (KeyError, TypeError, ValueError) as e:
        raise SnapshotError(f"Malformed detector response: {e}") from e


class HttpSnapshotSource:
    """Captures a camera frame and asks the remote detector what is in it"""

    def __init__(
        self,
        camera: VideoStream,
        server_url: str,
        timeout: float = 5.0,
        jpeg_quality: int = 90,
        session: Optional[requests.Session] = None,
    ):
        self.camera = camera
        self.server_url = server_url
        self.timeout = timeout
        self.jpeg_quality = jpeg_quality
        self.session = session or requests.Session()

    def open(self) -> None:
        self.camera.open()

    def close(self) -> None:
        self.camera.stop()

    async def snapshot(self) -> DetectionSnapshot:
        """Capture and detect one frame without blocking the event loop"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._capture_and_detect)

    def _capture_and_detect(self) -> DetectionSnapshot:
        ret, frame = self.camera.read()
        if not ret:
            raise SnapshotError("Failed to grab frame")
        return self.detect(encode_jpeg(frame, self.jpeg_quality))

    def detect(self, image: bytes) -> DetectionSnapshot:
        """
        Post one encoded image to the detector

        Args:
            image: JPEG bytes

        Returns:
            Predictions for the image

        Raises:
            SnapshotError: on transport failure, non-200 response or bad body
        """
        try:
            response = self.session.post(
                self.server_url,
                files={'image': ('frame.jpg', image, 'image/jpeg')},
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise SnapshotError(f"Network error: {e}") from e

        if response.status_code != 200:
            raise SnapshotError(f"Detector returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise SnapshotError(f"Detector response is not JSON: {e}") from e

        snapshot = parse_detection_response(payload)
        logger.debug(f"Detector returned {len(snapshot)} predictions")
        return snapshot
