import json

import pytest

from kirana_cart.config import Settings, load_settings
from kirana_cart.errors import ConfigError
from kirana_cart.services.json_db import JsonCatalog, load_catalog


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_missing_keys_take_defaults(tmp_path):
    path = write_json(tmp_path / "settings.json", {"capture": {"history_length": 5}})

    settings = load_settings(path)

    assert settings.capture.history_length == 5
    assert settings.capture.min_detection_frames == 3
    assert settings.capture.tick_seconds == 0.5
    assert settings.checkout.delay_seconds == 2.0


@pytest.mark.parametrize("capture", [
    {"history_length": 0},
    {"min_detection_frames": 0},
    {"tick_ms": 0},
    {"unknown_key": 1},
    {"tick_ms": "500"},
    {"history_length": 2.5},
    {"min_detection_frames": True},
    {"max_consecutive_failures": None},
])
def test_invalid_capture_settings_rejected(capture):
    with pytest.raises(ConfigError):
        Settings.from_dict({"capture": capture})


def test_explicit_missing_file_is_an_error(tmp_path):
    with pytest.raises(ConfigError):
        load_settings(tmp_path / "nope.json")


def test_unparseable_file_is_an_error(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(path)


def test_catalog_keys_on_yolo_class(tmp_path):
    path = write_json(tmp_path / "products.json", {"products": [
        {"id": "coke", "name": "Coca Cola 500ml", "price": 100, "yolo_class": "Coke"},
        {"name": "Dettol", "price": 25},
    ]})

    catalog = JsonCatalog(path).load_catalog()

    assert catalog.price("Coke") == 100
    assert catalog.price("Dettol") == 25
    assert catalog.get_product("Dettol").id == "dettol"
    assert catalog.price("Coca Cola 500ml") == 0
    assert catalog.misses["Coca Cola 500ml"] == 1


def test_negative_price_rejected(tmp_path):
    path = write_json(tmp_path / "products.json", {"products": [{"name": "Coke", "price": -1}]})
    with pytest.raises(ConfigError):
        JsonCatalog(path).load_catalog()


def test_builtin_catalog_when_no_path():
    catalog = load_catalog(None)
    assert catalog.price("Ariel") == 175
    assert catalog.price("Wai Wai") == 20


@pytest.mark.parametrize("data", [
    {"detection": {"timeout": "5"}},
    {"detection": {"timeout": 0}},
    {"detection": {"jpeg_quality": 90.5}},
    {"checkout": {"delay_seconds": "2"}},
    {"server": {"port": "8000"}},
])
def test_wrongly_typed_settings_rejected(data):
    with pytest.raises(ConfigError):
        Settings.from_dict(data)


def test_float_delay_and_integer_timeout_accepted():
    settings = Settings.from_dict({"detection": {"timeout": 3}, "checkout": {"delay_seconds": 1.5}})
    assert settings.detection.timeout == 3
    assert settings.checkout.delay_seconds == 1.5
