# cart.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Tuple

from .product import PriceCatalog

# class name -> stable quantity
StableCart = Mapping[str, int]


@dataclass(frozen=True)
class ReceiptLine:
    """Individual priced line of a receipt"""
    item: str
    quantity: int
    unit_price: float

    @property
    def subtotal(self) -> float:
        """Calculate subtotal for this line"""
        return self.unit_price * self.quantity

    def __str__(self):
        return f"{self.item} × {self.quantity} - Rs. {self.subtotal:.2f}"


@dataclass(frozen=True)
class Receipt:
    """Priced snapshot of the cart taken at checkout"""
    lines: Tuple[ReceiptLine, ...]
    unpriced: Tuple[str, ...] = ()
    currency: str = "Rs."
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def total(self) -> float:
        return sum(line.subtotal for line in self.lines)

    @property
    def item_count(self) -> int:
        """Get total number of items on the receipt"""
        return sum(line.quantity for line in self.lines)

    @property
    def items(self) -> Dict[str, int]:
        return {line.item: line.quantity for line in self.lines}

    def format(self) -> str:
        """Render the receipt as text, one line per item then the total"""
        rows = [f"{line.item} × {line.quantity}   {self.currency} {line.subtotal:.2f}" for line in self.lines]
        rows.append(f"Total: {self.currency} {self.total:.2f}")
        return "\n".join(rows)

    def to_dict(self):
        return {
            'items': [
                {
                    'item': line.item,
                    'quantity': line.quantity,
                    'unit_price': line.unit_price,
                    'total': line.subtotal
                }
                for line in self.lines
            ],
            'item_count': self.item_count,
            'total': self.total,
            'unpriced': list(self.unpriced),
            'currency': self.currency,
            'timestamp': self.created_at.isoformat()
        }

    def __len__(self):
        """Number of unique products on the receipt"""
        return len(self.lines)

    def __str__(self):
        return f"Receipt: {self.item_count} items - Total: {self.currency} {self.total:.2f}"


def price_cart(cart: StableCart, catalog: PriceCatalog, currency: str = "Rs.", record_misses: bool = True) -> Receipt:
    """
    Price every stable item against the catalog

    Args:
        cart: Stable class -> quantity mapping
        catalog: Price catalog, unknown classes price at 0
        currency: Currency label used when formatting
        record_misses: Count unknown classes in catalog.misses

    Returns:
        Receipt with one line per cart entry, in cart order
    """
    lines: List[ReceiptLine] = []
    unpriced: List[str] = []
    for item, quantity in cart.items():
        if item not in catalog:
            unpriced.append(item)
        lines.append(ReceiptLine(item=item, quantity=quantity, unit_price=catalog.price(item, record_miss=record_misses)))
    return Receipt(lines=tuple(lines), unpriced=tuple(unpriced), currency=currency)
