"""Cart mutations. Each returns the same cart so calls can be chained."""
from typing import Any, Optional

from .models import Cart, InvalidInputError, ItemKind, LineItem, validate_quantity


def merge_or_add_line_item(cart: Cart, item: Any, quantity: Optional[int] = None) -> Cart:
    """
    Add an item, merging into an existing (item_id, kind) row.

    item may be a LineItem, a catalog record or a mapping with id/name/price.
    Without a quantity, a LineItem adds its own quantity and anything else adds 1.
    """
    if quantity is None:
        quantity = item.quantity if isinstance(item, LineItem) else 1
    quantity = validate_quantity(quantity)
    line = item if isinstance(item, LineItem) else LineItem.from_catalog(item, quantity=quantity)

    existing = cart.find(line.item_id, line.kind)
    if existing:
        existing.quantity += quantity
    else:
        cart.items.append(LineItem(
            item_id=line.item_id,
            kind=line.kind,
            unit_price=line.unit_price,
            quantity=quantity,
            name=line.name,
        ))
    return cart


def remove_line_item(cart: Cart, item_id: str, kind: ItemKind) -> Cart:
    key = (str(item_id), ItemKind(kind))
    cart.items = [item for item in cart.items if item.key != key]
    return cart


def set_line_item_quantity(cart: Cart, item_id: str, kind: ItemKind, new_quantity: int) -> Cart:
    """Replace a row's quantity; zero or less removes the row."""
    if isinstance(new_quantity, bool) or not isinstance(new_quantity, int):
        raise InvalidInputError(f"Quantity must be an integer, got {new_quantity!r}")
    if new_quantity <= 0:
        return remove_line_item(cart, item_id, kind)

    existing = cart.find(item_id, kind)
    if existing is None:
        raise KeyError(f"No {ItemKind(kind).value} '{item_id}' in cart")
    existing.quantity = new_quantity
    return cart


def toggle_offer(cart: Cart, offer_id: str) -> Cart:
    offer_id = str(offer_id)
    if offer_id in cart.selected_offer_ids:
        cart.selected_offer_ids.remove(offer_id)
    else:
        cart.selected_offer_ids.append(offer_id)
    return cart
