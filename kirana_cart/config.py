# config.py
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path("config") / "settings.json"

# (section, key, accepted types) checked before range validation
NUMERIC_FIELDS = [
    ('detection', 'timeout', (int, float)),
    ('detection', 'jpeg_quality', (int,)),
    ('capture', 'tick_ms', (int,)),
    ('capture', 'history_length', (int,)),
    ('capture', 'min_detection_frames', (int,)),
    ('capture', 'max_consecutive_failures', (int,)),
    ('checkout', 'delay_seconds', (int, float)),
    ('server', 'port', (int,)),
]


@dataclass
class DetectionSettings:
    server_url: str = "http://localhost:3000/detect"
    timeout: float = 5.0
    jpeg_quality: int = 90


@dataclass
class CameraSettings:
    default_source: Union[int, str] = 0


@dataclass
class CaptureSettings:
    tick_ms: int = 500
    history_length: int = 10
    min_detection_frames: int = 3
    max_consecutive_failures: int = 10

    @property
    def tick_seconds(self) -> float:
        return self.tick_ms / 1000.0


@dataclass
class CheckoutSettings:
    delay_seconds: float = 2.0
    currency: str = "Rs."


@dataclass
class CatalogSettings:
    path: Optional[str] = None


@dataclass
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class Settings:
    """Application settings, one attribute per section of settings.json"""
    detection: DetectionSettings = field(default_factory=DetectionSettings)
    camera: CameraSettings = field(default_factory=CameraSettings)
    capture: CaptureSettings = field(default_factory=CaptureSettings)
    checkout: CheckoutSettings = field(default_factory=CheckoutSettings)
    catalog: CatalogSettings = field(default_factory=CatalogSettings)
    server: ServerSettings = field(default_factory=ServerSettings)

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        """
        Build settings from a parsed settings.json

        Missing sections and keys keep their defaults; unknown keys are
        rejected so typos do not silently fall back.
        """
        sections = {
            'detection': DetectionSettings,
            'camera': CameraSettings,
            'capture': CaptureSettings,
            'checkout': CheckoutSettings,
            'catalog': CatalogSettings,
            'server': ServerSettings,
        }
        kwargs = {}
        for name, section_cls in sections.items():
            values = data.get(name) or {}
            if not isinstance(values, dict):
                raise ConfigError(f"Section '{name}' must be an object")
            try:
                kwargs[name] = section_cls(**values)
            except TypeError as e:
                raise ConfigError(f"Invalid keys in section '{name}': {e}") from e

        settings = cls(**kwargs)
        settings.validate()
        return settings

    def validate(self) -> None:
        for section, key, types in NUMERIC_FIELDS:
            value = getattr(getattr(self, section), key)
            # bool is an int subclass but never a valid number here
            if isinstance(value, bool) or not isinstance(value, types):
                expected = " or ".join(t.__name__ for t in types)
                raise ConfigError(f"{section}.{key} must be {expected}, got {value!r}")

        capture = self.capture
        if capture.tick_ms <= 0:
            raise ConfigError(f"capture.tick_ms must be positive, got {capture.tick_ms}")
        if capture.history_length < 1:
            raise ConfigError(f"capture.history_length must be at least 1, got {capture.history_length}")
        if capture.min_detection_frames < 1:
            raise ConfigError(f"capture.min_detection_frames must be at least 1, got {capture.min_detection_frames}")
        if capture.min_detection_frames > capture.history_length:
            logger.warning(
                f"min_detection_frames ({capture.min_detection_frames}) exceeds history_length "
                f"({capture.history_length}); no item can ever become stable"
            )
        if capture.max_consecutive_failures < 1:
            raise ConfigError("capture.max_consecutive_failures must be at least 1")
        if self.detection.timeout <= 0:
            raise ConfigError("detection.timeout must be positive")
        if self.checkout.delay_seconds < 0:
            raise ConfigError("checkout.delay_seconds must not be negative")
        if not 0 < self.detection.jpeg_quality <= 100:
            raise ConfigError("detection.jpeg_quality must be in 1..100")


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Load settings from a JSON file

    Args:
        path: Settings file, defaults to config/settings.json. When the
              default file does not exist the built-in defaults are used.

    Returns:
        Validated settings
    """
    settings_path = Path(path) if path else DEFAULT_SETTINGS_PATH
    if not settings_path.exists():
        if path:
            raise ConfigError(f"Settings file not found: {settings_path}")
        logger.warning(f"{settings_path} not found, using default settings")
        return Settings()

    try:
        with open(settings_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read settings from {settings_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{settings_path} must contain a JSON object")

    logger.info(f"Loaded settings from {settings_path}")
    return Settings.from_dict(data)
