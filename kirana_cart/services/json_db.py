# json_db.py
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..errors import ConfigError
from ..models.product import PriceCatalog, Product

logger = logging.getLogger(__name__)


class JsonCatalog:
    """Read-only access to a products.json file"""

    def __init__(self, db_path: Union[str, Path] = "database/products.json"):
        self.db_path = Path(db_path)

    def _read_db(self) -> dict:
        try:
            with open(self.db_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read catalog {self.db_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{self.db_path} must contain a JSON object")
        return data

    def get_products(self) -> List[Dict]:
        products = self._read_db().get("products", [])
        if not isinstance(products, list):
            raise ConfigError(f"'products' in {self.db_path} must be a list")
        return products

    def load_catalog(self) -> PriceCatalog:
        """Build a price catalog from every product in the file"""
        catalog = PriceCatalog(Product.from_dict(p) for p in self.get_products())
        logger.info(f"Loaded {len(catalog)} products from {self.db_path}")
        return catalog


def load_catalog(path: Optional[Union[str, Path]] = None) -> PriceCatalog:
    """Catalog from a products file, or the built-in one when no path is set"""
    if not path:
        logger.info("No catalog path configured, using built-in prices")
        return PriceCatalog.default()
    return JsonCatalog(path).load_catalog()
