# receipt.py
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from models import CartTotals

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
RECEIPT_PREFIX = "R"


def receipt_number_for(timestamp: datetime) -> str:
    """
    Derive the receipt number from the timestamp's epoch milliseconds.
    Naive timestamps are read as UTC, so the same instant always
    maps to the same number.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    millis = (timestamp - EPOCH) // timedelta(milliseconds=1)
    return f"{RECEIPT_PREFIX}{millis}"


@dataclass(frozen=True)
class ReceiptHeader:
    timestamp: datetime
    receipt_number: str
    store_id: Optional[str] = None


@dataclass(frozen=True)
class Receipt:
    """Checkout snapshot of the cart lines and totals."""
    header: ReceiptHeader
    lines: tuple
    totals: "CartTotals"

    def to_dict(self):
        """Plain dict view of the receipt for export."""
        return {
            'receipt_number': self.header.receipt_number,
            'timestamp': self.header.timestamp.isoformat(),
            'store_id': self.header.store_id,
            'lines': [{
                'item_id': line.item.id,
                'name': line.item.name,
                'price': line.item.price,
                'quantity': line.quantity,
                'discount_percent': line.discount_percent,
                'line_net': line.line_net,
                'discount_amount': line.discount_amount,
            } for line in self.lines],
            'totals': asdict(self.totals),
        }


def build_receipt(cart_state, timestamp: datetime, store_id: Optional[str] = None) -> Receipt:
    """Copy the current cart state into a Receipt."""
    header = ReceiptHeader(
        timestamp=timestamp,
        receipt_number=receipt_number_for(timestamp),
        store_id=store_id,
    )
    # lines are frozen, so a new tuple detaches the receipt from the cart
    return Receipt(header=header, lines=tuple(cart_state.lines), totals=cart_state.totals)
