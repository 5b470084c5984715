"""
Cart ledger for an in-progress sale.

A cart is a plain list of line dicts kept in the session:

    {"product_id": 12, "name": "Chips 40g", "price": Decimal("2.50"), "qty": 3}

Lines restored from an order whose product has since been deleted carry
`product_id=None` and a `ref` key instead, so they can still be addressed by
the decrement/remove buttons.

Totals are always recomputed from the lines; nothing here caches a total.
"""
from decimal import Decimal, InvalidOperation
from typing import Iterable

from bizops.core.config import settings


def _to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def item_key(item: dict) -> str:
    """Identifier used in cart buttons for this line."""
    if item.get("product_id") is not None:
        return str(item["product_id"])
    return str(item.get("ref") or item.get("name", ""))


def _find(cart: list[dict], key) -> int:
    wanted = str(key)
    for idx, item in enumerate(cart):
        if item_key(item) == wanted:
            return idx
    return -1


def add_or_increment(cart: list[dict], product: dict, qty: int) -> list[dict]:
    """
    Add `qty` units of `product` (needs `product_id`, `name`, `price`).

    An existing line for the same product grows; no duplicate lines.
    """
    if not isinstance(qty, int) or isinstance(qty, bool) or qty <= 0:
        raise ValueError(f"quantity must be a positive integer, got {qty!r}")

    idx = _find(cart, product["product_id"])
    if idx >= 0:
        cart[idx]["qty"] += qty
    else:
        cart.append({
            "product_id": product["product_id"],
            "name": product["name"],
            "price": _to_decimal(product.get("price")),
            "qty": qty,
        })
    return cart


def decrement(cart: list[dict], product_id) -> list[dict]:
    """Take one unit off a line; the line goes away at zero. Unknown ids are ignored."""
    idx = _find(cart, product_id)
    if idx >= 0:
        cart[idx]["qty"] -= 1
        if cart[idx]["qty"] <= 0:
            del cart[idx]
    return cart


def remove(cart: list[dict], product_id) -> list[dict]:
    idx = _find(cart, product_id)
    if idx >= 0:
        del cart[idx]
    return cart


def line_total(item: dict) -> Decimal:
    return _to_decimal(item.get("price")) * int(item.get("qty") or 0)


def cart_total(cart: Iterable[dict]) -> Decimal:
    return sum((line_total(item) for item in cart), Decimal("0"))


def format_money(amount) -> str:
    return f"{settings.CURRENCY_SYMBOL}{_to_decimal(amount):.2f}"


def render(cart: list[dict]) -> tuple[list[str], Decimal]:
    """One display line per item plus the grand total."""
    lines = [
        f"• {item['name']} x{item['qty']} = {format_money(line_total(item))}"
        for item in cart
    ]
    return lines, cart_total(cart)


def reconstruct_from_history(line_items: Iterable) -> list[dict]:
    """
    Build a fresh cart from persisted order lines (for "repeat order").

    Accepts OrderItem rows or dicts with the same attribute names. Lines
    without a product reference are kept with their stored name and price.
    """
    cart: list[dict] = []
    for position, row in enumerate(line_items):
        get = row.get if isinstance(row, dict) else lambda attr, _row=row: getattr(_row, attr, None)
        qty = int(get("quantity") or 0)
        if qty <= 0:
            continue
        product_id = get("product_id")
        name = get("product_name") or "N/A"
        price = _to_decimal(get("unit_price"))
        if product_id is not None:
            idx = _find(cart, product_id)
            if idx >= 0:
                cart[idx]["qty"] += qty
                continue
            cart.append({"product_id": product_id, "name": name, "price": price, "qty": qty})
        else:
            ref = f"h{get('id') if get('id') is not None else position}"
            cart.append({"product_id": None, "ref": ref, "name": name, "price": price, "qty": qty})
    return cart
