# models.py
import logging
import numbers
from dataclasses import dataclass, field, replace
from datetime import datetime

from catalog import CatalogLoader, Item
from receipt import Receipt, build_receipt
from utils import save_receipt

logger = logging.getLogger("pos_system.cart")

# Fixed VAT rate applied on the subtotal
VAT_RATE = 0.15


def clamp_discount(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)


def check_quantity(quantity):
    """Quantities are whole numbers; bools do not count."""
    if isinstance(quantity, bool) or not isinstance(quantity, numbers.Integral):
        raise ValueError(f"The quantity must be a whole number, got {quantity!r}.")


@dataclass(frozen=True)
class CartLine:
    """One item in the cart with its quantity and discount fraction (0.0 - 1.0)."""
    item: Item
    quantity: int
    discount_percent: float = 0.0

    def __post_init__(self):
        check_quantity(self.quantity)
        if self.quantity < 1:
            raise ValueError("Cart line quantity must be a positive number.")
        # frozen dataclass, so the clamped value goes through object.__setattr__
        object.__setattr__(self, 'discount_percent', clamp_discount(self.discount_percent))

    def with_changes(self, **changes):
        """Return a copy of this line with the given fields replaced."""
        return replace(self, **changes)

    @property
    def gross(self):
        return self.item.price * self.quantity

    @property
    def line_net(self):
        """price x qty x (1 - discount)"""
        return self.item.price * self.quantity * (1.0 - self.discount_percent)

    @property
    def discount_amount(self):
        return self.item.price * self.quantity * self.discount_percent


@dataclass(frozen=True)
class CartTotals:
    subtotal: float = 0.0
    vat: float = 0.0
    discount: float = 0.0
    grand_total: float = 0.0


def compute_totals(lines) -> CartTotals:
    """
    Calculate cart totals from scratch:
    - subtotal = sum of line nets
    - discount = sum of line discount amounts
    - vat = subtotal x VAT_RATE
    - grand_total = subtotal + vat
    No rounding is applied here; formatting is left to the presentation layer.
    """
    subtotal = 0.0
    discount = 0.0
    for line in lines:
        subtotal += line.line_net
        discount += line.discount_amount

    vat = subtotal * VAT_RATE
    return CartTotals(subtotal=subtotal, vat=vat, discount=discount, grand_total=subtotal + vat)


@dataclass(frozen=True)
class CartState:
    """Immutable snapshot of the cart: ordered lines plus their totals."""
    lines: tuple = ()
    totals: CartTotals = field(default_factory=CartTotals)

    @classmethod
    def from_lines(cls, lines):
        lines = tuple(lines)
        return cls(lines=lines, totals=compute_totals(lines))

    @property
    def is_empty(self):
        return not self.lines

    @property
    def total_items(self):
        return sum(line.quantity for line in self.lines)

    def find(self, item_id: str):
        """Return (index, line) for the given item id, or (-1, None)."""
        for idx, line in enumerate(self.lines):
            if line.item.id == item_id:
                return idx, line
        return -1, None


class Cart:
    """
    Holds the current CartState and replaces it on every command.
    Observers registered with subscribe() receive each new state in order.
    """
    def __init__(self, state: CartState = None):
        self._state = state if state is not None else CartState()
        self._observers = []

    @property
    def state(self) -> CartState:
        return self._state

    def subscribe(self, callback):
        """Register an observer; it gets the current state right away."""
        self._observers.append(callback)
        callback(self._state)

        def unsubscribe():
            if callback in self._observers:
                self._observers.remove(callback)
        return unsubscribe

    def _transition(self, lines):
        new_state = CartState.from_lines(lines)
        if new_state != self._state:
            self._state = new_state
            for callback in list(self._observers):
                callback(new_state)
        return self._state

    def add_item(self, item: Item, quantity: int = 1):
        """
        Add an item, merging quantity into an existing line for the same id.
        The existing line keeps its position and discount.
        Raises ValueError for a quantity that is not a whole number of at least 1.
        """
        check_quantity(quantity)
        if quantity < 1:
            raise ValueError("The quantity must be a positive number.")

        lines = list(self._state.lines)
        idx, existing = self._state.find(item.id)
        if existing is not None:
            lines[idx] = existing.with_changes(item=item, quantity=existing.quantity + quantity)
        else:
            lines.append(CartLine(item=item, quantity=quantity))
        logger.debug(f"Add {quantity} x {item.id}")
        return self._transition(lines)

    def remove_item(self, item_id: str):
        lines = [line for line in self._state.lines if line.item.id != item_id]
        logger.debug(f"Remove {item_id}")
        return self._transition(lines)

    def change_qty(self, item_id: str, quantity: int):
        """
        Replace a line's quantity; zero or less removes the line.
        Raises ValueError for a quantity that is not a whole number.
        """
        check_quantity(quantity)
        if quantity <= 0:
            return self.remove_item(item_id)

        idx, existing = self._state.find(item_id)
        if existing is None:
            return self._state
        lines = list(self._state.lines)
        lines[idx] = existing.with_changes(quantity=quantity)
        logger.debug(f"Quantity of {item_id} set to {quantity}")
        return self._transition(lines)

    def change_discount(self, item_id: str, discount_percent: float):
        """Replace a line's discount, clamped into [0, 1]."""
        discount = clamp_discount(discount_percent)
        idx, existing = self._state.find(item_id)
        if existing is None:
            return self._state
        lines = list(self._state.lines)
        lines[idx] = existing.with_changes(discount_percent=discount)
        logger.debug(f"Discount of {item_id} set to {discount:.4f}")
        return self._transition(lines)

    def clear(self):
        logger.debug("Cart cleared")
        return self._transition(())


class CashierSystem:
    """
    Coordinates catalog lookup, cart management and checkout.
    """
    def __init__(self, catalog: CatalogLoader = None, config=None):
        self.catalog = catalog or CatalogLoader()
        self.cart = Cart()
        self.config = config or {}

    @property
    def store_id(self):
        return self.config.get('store', {}).get('id')

    def add_by_id(self, item_id: str, qty: int = 1):
        """
        Look up an item in the loaded catalog and add it to the cart.
        Raises LookupError if the catalog is not loaded or the id is unknown.
        """
        item = self.catalog.get(item_id)
        if item is None:
            raise LookupError(f"Product not found: {item_id}")
        self.cart.add_item(item, qty)
        return item

    def checkout(self, timestamp: datetime = None) -> Receipt:
        """
        Snapshot the cart into a Receipt, write the configured receipt
        files and clear the cart.
        """
        timestamp = timestamp or datetime.now().astimezone()
        receipt = build_receipt(self.cart.state, timestamp, self.store_id)

        receipt_cfg = self.config.get('receipt', {})
        receipt_dir = receipt_cfg.get('receipt_dir')
        if receipt_dir:
            currency = self.config.get('ui', {}).get('currency', '$')
            for fmt in receipt_cfg.get('formats', ['txt']):
                path = save_receipt(receipt, receipt_dir, fmt, currency=currency)
                logger.info(f"Receipt written to {path}")

        logger.info(f"Checkout {receipt.header.receipt_number}: "
                    f"{len(receipt.lines)} lines, total {receipt.totals.grand_total:.2f}")
        self.cart.clear()
        return receipt
