import asyncio

import pytest
from fastapi.testclient import TestClient

from kirana_cart.config import Settings
from kirana_cart.main import create_app
from kirana_cart.services.station import CheckoutStation

from conftest import FakeSource, preds


@pytest.fixture
def station(catalog):
    settings = Settings.from_dict({
        "capture": {"tick_ms": 60000},
        "checkout": {"delay_seconds": 0},
    })
    return CheckoutStation(FakeSource(), catalog, settings)


@pytest.fixture
def client(station):
    with TestClient(create_app(station)) as client:
        yield client


def test_lifespan_opens_and_closes_source(station):
    with TestClient(create_app(station)):
        assert station.source.opened == 1
        assert station.scheduler.running
    assert station.source.closed == 1


def test_checkout_round_trip(client, station):
    station.session.publish({"Coke": 2, "Dettol": 1}, preds("Coke", "Coke", "Dettol"))

    cart = client.get("/api/cart").json()
    assert cart["total"] == 225
    assert cart["state"] == "scanning"

    response = client.post("/api/checkout")
    assert response.status_code == 200
    assert response.json()["total"] == 225
    assert client.get("/api/cart").json()["state"] == "complete"

    response = client.post("/api/acknowledge")
    assert response.status_code == 200
    assert response.json()["state"] == "scanning"
    assert client.get("/api/cart").json()["items"] == []


def test_empty_checkout_returns_400(client):
    response = client.post("/api/checkout")
    assert response.status_code == 400
    assert response.json() == {"error": "No items detected in cart!"}


def test_acknowledge_while_scanning_returns_409(client):
    assert client.post("/api/acknowledge").status_code == 409
    assert client.post("/api/checkout/cancel").status_code == 409


def test_pause_and_resume(client, station):
    station.controller.window.push({"Coke": 1})

    assert client.post("/api/lifecycle/pause").json() == {"paused": True}
    assert station.source.closed == 1
    assert not station.scheduler.running
    assert client.get("/api/system-status").json()["status"] == "Paused"

    assert client.post("/api/lifecycle/resume").json() == {"paused": False}
    assert station.source.opened == 2
    assert len(station.controller.window) == 0
    assert station.scheduler.running


def test_pause_and_resume_during_checkout_keeps_cart_frozen(catalog):
    settings = Settings.from_dict({
        "capture": {"tick_ms": 60000},
        "checkout": {"delay_seconds": 60},
    })
    station = CheckoutStation(FakeSource(), catalog, settings)
    session = station.session

    async def scenario():
        await station.start()
        session.publish({"Coke": 2}, preds("Coke", "Coke"))
        receipt = session.begin_checkout()

        await station.pause()
        await station.resume()

        assert session.state.value == "checking_out"
        assert dict(session.stable_cart) == {"Coke": 2}
        assert session.receipt is receipt
        assert session.receipt.total == 200
        assert station.controller.suspended
        assert await station.controller.tick() is False
        assert session.status == "Processing Checkout..."

        await station.stop()

    asyncio.run(scenario())

    assert station.source.calls == 0


def test_system_status_and_products(client):
    status = client.get("/api/system-status").json()
    assert status["state"] == "scanning"
    assert status["detector_status"] == "ok"
    assert status["fps"] == 0

    names = {p["name"] for p in client.get("/api/products").json()}
    assert names == {"Coke", "Dettol"}


def test_websocket_sends_cart_on_connect(client):
    with client.websocket_connect("/ws/cart") as websocket:
        message = websocket.receive_json()
    assert message["type"] == "cart_updated"
    assert message["items"] == []


def test_station_tick_feeds_session(catalog):
    source = FakeSource([preds("Coke")] * 3)
    station = CheckoutStation(source, catalog, Settings.from_dict({"capture": {"min_detection_frames": 3}}))

    async def scenario():
        for _ in range(3):
            await station.controller.tick()

    asyncio.run(scenario())

    assert dict(station.session.stable_cart) == {"Coke": 1}
    assert station.session.status == "Products Detected"
