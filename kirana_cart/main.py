from contextlib import asynccontextmanager
from datetime import datetime
import asyncio
import logging
from typing import Optional, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings
from .errors import CheckoutCancelledError, EmptyCartError, InvalidTransitionError
from .services.station import CheckoutStation

logger = logging.getLogger(__name__)


# WebSocket connections manager
class ConnectionManager:
    def __init__(self):
        self.active_connections: list[WebSocket] = []
        self._pending: Set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"WebSocket connected. Total connections: {len(self.active_connections)}")

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        logger.info(f"WebSocket disconnected. Total connections: {len(self.active_connections)}")

    async def broadcast(self, message: dict):
        for connection in list(self.active_connections):
            try:
                await connection.send_json(message)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.warning(f"Dropping WebSocket after failed send: {e}")
                self.disconnect(connection)

    def publish(self, event: dict):
        """Session observer: schedule a broadcast of one event"""
        if not self.active_connections:
            return
        task = asyncio.get_running_loop().create_task(self.broadcast(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


def create_app(station: Optional[CheckoutStation] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the API around one checkout station

    Args:
        station: Pre-built station, otherwise one is built from settings
        settings: Settings used when no station is given
    """
    station = station or CheckoutStation.from_settings(settings or Settings())
    session = station.session
    manager = ConnectionManager()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        unsubscribe = session.subscribe(manager.publish)
        await station.start()
        yield
        # Shutdown
        logger.info("Shutting down...")
        unsubscribe()
        await station.stop()

    app = FastAPI(title="Kirana Cart", version="1.0.0", lifespan=lifespan)
    app.state.station = station
    app.state.manager = manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ============================================================================
    # CART & CHECKOUT ENDPOINTS
    # ============================================================================

    @app.get("/api/cart")
    async def get_cart():
        """Current stable cart with running total"""
        return session.to_dict()

    @app.post("/api/checkout")
    async def checkout():
        """Freeze the cart, wait out the checkout delay and return the receipt"""
        try:
            receipt = await session.request_checkout()
        except EmptyCartError as e:
            return JSONResponse(status_code=400, content={"error": str(e)})
        except (InvalidTransitionError, CheckoutCancelledError) as e:
            return JSONResponse(status_code=409, content={"error": str(e)})

        logger.info(f"Checkout complete for {session.currency} {receipt.total:.2f}")
        return receipt.to_dict()

    @app.post("/api/checkout/cancel")
    async def cancel_checkout():
        try:
            session.cancel_checkout()
        except InvalidTransitionError as e:
            return JSONResponse(status_code=409, content={"error": str(e)})
        return {"success": True, "state": session.state.value}

    @app.post("/api/acknowledge")
    async def acknowledge():
        """Close the receipt and get ready for the next customer"""
        try:
            session.acknowledge()
        except InvalidTransitionError as e:
            return JSONResponse(status_code=409, content={"error": str(e)})
        return {"success": True, "state": session.state.value, "status": session.status}

    # ============================================================================
    # LIFECYCLE & STATUS ENDPOINTS
    # ============================================================================

    @app.post("/api/lifecycle/pause")
    async def pause():
        await station.pause()
        return {"paused": station.paused}

    @app.post("/api/lifecycle/resume")
    async def resume():
        await station.resume()
        return {"paused": station.paused}

    @app.get("/api/products")
    async def get_products():
        return [product.to_dict() for product in station.catalog.products()]

    @app.get("/api/system-status")
    async def system_status():
        """Get system status for monitoring"""
        status = station.stats()
        status.update({
            "timestamp": datetime.now().isoformat(),
            "active_connections": len(manager.active_connections),
            "catalog_misses": dict(station.catalog.misses)
        })
        return status

    @app.websocket("/ws/cart")
    async def websocket_cart(websocket: WebSocket):
        await manager.connect(websocket)
        try:
            await websocket.send_json({"type": "cart_updated", **session.summary()})
            while True:
                # Clients only listen; incoming messages are ignored
                await websocket.receive_text()
        except WebSocketDisconnect:
            manager.disconnect(websocket)

    return app
