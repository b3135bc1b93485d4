from .capture_loop import CaptureLoopController, CaptureScheduler, CycleGuard, DetectorStatus, ThroughputMeter
from .json_db import JsonCatalog, load_catalog
from .session import CartSession, SessionState
from .station import CheckoutStation

__all__ = [
    'CaptureLoopController',
    'CaptureScheduler',
    'CartSession',
    'CheckoutStation',
    'CycleGuard',
    'DetectorStatus',
    'JsonCatalog',
    'SessionState',
    'ThroughputMeter',
    'load_catalog',
]
