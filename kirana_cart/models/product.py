# product.py
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from ..errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Product:
    """Product data model"""
    id: str
    name: str
    price: float
    yolo_class_name: Optional[str] = None
    color: Optional[str] = None

    @property
    def class_name(self) -> str:
        """Detector class this product is recognized as"""
        return self.yolo_class_name or self.name

    def __str__(self):
        return f"{self.name} - Rs. {self.price:.2f}"

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'name': self.name,
            'price': self.price,
            'yolo_class': self.yolo_class_name,
            'color': self.color
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        try:
            name = str(data['name'])
            price = float(data['price'])
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid product entry {data!r}: {e}") from e

        if price < 0:
            raise ConfigError(f"Negative price for {name}: {price}")

        return cls(
            id=str(data.get('id') or name.lower().replace(' ', '-')),
            name=name,
            price=price,
            yolo_class_name=data.get('yolo_class') or data.get('yolo_class_name'),
            color=data.get('color')
        )


DEFAULT_PRODUCTS = [
    Product(id='coke', name='Coke', price=100.0, color='red'),
    Product(id='dettol', name='Dettol', price=25.0, color='blue'),
    Product(id='wai-wai', name='Wai Wai', price=20.0, color='amber'),
    Product(id='ariel', name='Ariel', price=175.0, color='green'),
]


class PriceCatalog:
    """
    Read-only mapping from detector class to unit price

    Lookups for classes with no configured price return 0 and are counted
    in ``misses`` so mispriced totals can be detected.
    """

    def __init__(self, products: Iterable[Product]):
        self._products: Dict[str, Product] = {}
        for product in products:
            if product.class_name in self._products:
                raise ConfigError(f"Duplicate catalog entry for class {product.class_name}")
            self._products[product.class_name] = product
        self.misses: Counter = Counter()

    @classmethod
    def from_prices(cls, prices: Dict[str, float]) -> "PriceCatalog":
        """Build a catalog straight from class -> price"""
        return cls(Product.from_dict({'name': name, 'price': price}) for name, price in prices.items())

    @classmethod
    def default(cls) -> "PriceCatalog":
        return cls(DEFAULT_PRODUCTS)

    def price(self, class_name: str, record_miss: bool = True) -> float:
        """
        Get unit price for a class

        Args:
            class_name: Detector class name
            record_miss: Count the lookup in misses when the class is unknown

        Returns:
            Configured unit price, or 0 for an unknown class
        """
        product = self._products.get(class_name)
        if product is None:
            if record_miss:
                self.misses[class_name] += 1
            logger.debug(f"No price configured for {class_name}")
            return 0.0
        return product.price

    def get_product(self, class_name: str) -> Optional[Product]:
        return self._products.get(class_name)

    def products(self) -> List[Product]:
        return list(self._products.values())

    def __contains__(self, class_name):
        return class_name in self._products

    def __len__(self):
        return len(self._products)
