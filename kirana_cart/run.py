#!/usr/bin/env python3
"""
Kirana Cart
Camera-based cart recognition and checkout service
"""

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from .config import load_settings
from .errors import ConfigError
from .main import create_app


def setup_logging(log_dir: Path = Path("logs")):
    """Setup logging configuration"""
    log_dir.mkdir(exist_ok=True)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_dir / "app.log"),
            logging.StreamHandler(sys.stdout)
        ]
    )

    return logging.getLogger("kirana_cart")


def main(argv=None):
    """Main application entry point"""
    parser = argparse.ArgumentParser(description="Kirana cart checkout service")
    parser.add_argument("--config", help="Path to settings.json (default: config/settings.json)")
    parser.add_argument("--host", help="Override server host")
    parser.add_argument("--port", type=int, help="Override server port")
    args = parser.parse_args(argv)

    logger = setup_logging()
    logger.info("Starting Kirana Cart")

    try:
        settings = load_settings(args.config)
        app = create_app(settings=settings)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    host = args.host or settings.server.host
    port = args.port or settings.server.port
    logger.info(f"Serving on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
