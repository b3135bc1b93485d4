# video_stream.py
import logging
import threading
import time
from typing import Optional, Tuple, Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class VideoStream:
    """Threaded camera class for efficient video capture"""

    def __init__(self, src: Union[int, str] = 0, poll_interval: float = 0.01):
        """
        Initialize video stream

        Args:
            src: Camera source (int for webcam or string for IP camera)
            poll_interval: Seconds between background frame grabs
        """
        self.src = src
        self.poll_interval = poll_interval
        self.cap = None
        self.ret = False
        self.frame: Optional[np.ndarray] = None
        self.stopped = True
        self.lock = threading.Lock()
        self.thread = None

    def open(self) -> None:
        """Open the camera and start the update thread"""
        if not self.stopped:
            return

        self.cap = cv2.VideoCapture(self.src)
        if not self.cap.isOpened():
            logger.error(f"Could not open camera source {self.src!r}")

        with self.lock:
            self.ret, self.frame = self.cap.read()
        self.stopped = False

        self.thread = threading.Thread(target=self.update, daemon=True)
        self.thread.start()
        logger.info(f"Camera {self.src!r} opened")

    def update(self):
        """Continuously update frames in background thread"""
        while not self.stopped:
            ret, frame = self.cap.read()
            with self.lock:
                self.ret, self.frame = ret, frame
            time.sleep(self.poll_interval)

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        """Get a copy of the current frame"""
        with self.lock:
            if not self.ret or self.frame is None:
                return False, None
            return True, self.frame.copy()

    def stop(self):
        """Stop the video stream"""
        if self.stopped:
            return
        self.stopped = True
        self.thread.join()
        self.cap.release()
        with self.lock:
            self.ret, self.frame = False, None
        logger.info(f"Camera {self.src!r} released")
