from .detection_client import HttpSnapshotSource, encode_jpeg, parse_detection_response
from .history import HistoryWindow
from .stabilizer import stabilize
from .video_stream import VideoStream

__all__ = [
    'HistoryWindow',
    'HttpSnapshotSource',
    'VideoStream',
    'encode_jpeg',
    'parse_detection_response',
    'stabilize',
]
