# station.py
import logging

from ..config import Settings
from ..detection.detection_client import HttpSnapshotSource
from ..detection.video_stream import VideoStream
from ..models.product import PriceCatalog
from .capture_loop import CaptureLoopController, CaptureScheduler
from .json_db import load_catalog
from .session import CartSession, SessionState

logger = logging.getLogger(__name__)


class CheckoutStation:
    """
    Wires one camera, the capture loop and the cart session together

    Also handles the app lifecycle: pause() releases the camera and stops the
    timer, resume() reopens it and restarts capture from an empty history,
    independently of where the checkout state machine is.
    """

    def __init__(self, source, catalog: PriceCatalog, settings: Settings = None):
        self.settings = settings or Settings()
        self.source = source
        self.catalog = catalog
        self.controller = CaptureLoopController.from_settings(source, self.settings.capture)
        self.scheduler = CaptureScheduler(self.controller, self.settings.capture.tick_seconds)
        self.session = CartSession(
            catalog,
            self.controller,
            checkout_delay=self.settings.checkout.delay_seconds,
            currency=self.settings.checkout.currency
        )
        self.paused = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "CheckoutStation":
        """Build a station talking to the configured camera and detector"""
        camera = VideoStream(settings.camera.default_source)
        source = HttpSnapshotSource(
            camera,
            settings.detection.server_url,
            timeout=settings.detection.timeout,
            jpeg_quality=settings.detection.jpeg_quality
        )
        return cls(source, load_catalog(settings.catalog.path), settings)

    async def start(self) -> None:
        self.source.open()
        self.scheduler.start()
        self.session.set_status("Camera Ready")
        logger.info("Checkout station started")

    async def stop(self) -> None:
        await self.scheduler.stop()
        self.session.close()
        self.source.close()
        logger.info("Checkout station stopped")

    async def pause(self) -> None:
        """App went to the background"""
        if self.paused:
            return
        self.paused = True
        await self.scheduler.stop()
        self.source.close()
        self.session.set_status("Paused")
        logger.info("Capture paused")

    async def resume(self) -> None:
        """App came back: rebuild capture from a clean history window"""
        if not self.paused:
            return
        self.paused = False
        self.controller.reset()
        if self.session.state is SessionState.SCANNING:
            self.session.publish({}, [])
        self.source.open()
        self.scheduler.start()
        if self.session.state is not SessionState.SCANNING:
            self.session.set_status("Processing Checkout..." if self.session.state is SessionState.CHECKING_OUT
                                    else "Checkout Complete")
        logger.info("Capture resumed")

    def stats(self) -> dict:
        data = self.controller.stats()
        data['state'] = self.session.state.value
        data['status'] = self.session.status
        data['paused'] = self.paused
        return data
