"""Shopping cart as plain values.

The cart belongs to whoever renders the storefront; it is an immutable
tuple of ``CartItem`` and every operation returns a new tuple.
"""

from dataclasses import dataclass, replace
from typing import Tuple


@dataclass(frozen=True)
class CartItem:
    id: str
    xs2_ticket_id: str
    xs2_event_id: str
    event_name: str
    category_name: str
    ticket_type: str
    price: float
    quantity: int


Cart = Tuple[CartItem, ...]


def cart_item_id(group_key: str, price: float) -> str:
    return f"{group_key}__{price:g}"


def add_item(items: Cart, item: CartItem) -> Cart:
    """Append ``item``, or sum quantities into the line with the same id."""
    if any(i.id == item.id for i in items):
        return tuple(
            replace(i, quantity=i.quantity + item.quantity)
            if i.id == item.id else i
            for i in items
        )
    return (*items, item)


def remove_item(items: Cart, item_id: str) -> Cart:
    return tuple(i for i in items if i.id != item_id)


def clear_cart() -> Cart:
    return ()


def total_price(items: Cart) -> float:
    return sum(i.price * i.quantity for i in items)


def ticket_ids(items: Cart) -> list[str]:
    return [i.xs2_ticket_id for i in items]
