from .cart import Receipt, ReceiptLine, StableCart, price_cart
from .detection import BoundingBox, DetectionSnapshot, FrameTally, Prediction, make_tally, tally_snapshot
from .product import PriceCatalog, Product

__all__ = [
    'BoundingBox',
    'DetectionSnapshot',
    'FrameTally',
    'Prediction',
    'PriceCatalog',
    'Product',
    'Receipt',
    'ReceiptLine',
    'StableCart',
    'make_tally',
    'price_cart',
    'tally_snapshot',
]
