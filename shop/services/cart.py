from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from shop.errors import ValidationError
from shop.services.catalog import Product
from shop.services.customers import ORIGIN_STOREFRONT, Sale, add_sale
from shop.services.pricing import RETAIL_TIERS
from shop.session import load_state, save_state

logger = logging.getLogger(__name__)

CART_KEY = "cart"
ALL_CATEGORIES = "Todos"

PAYMENT_METHODS = ("pix", "credit", "debit")
MAX_INSTALLMENTS = 10
INSTALLMENTS_MIN_TOTAL = 300.0


@dataclass
class CartItem:
    product_id: str
    weight: str
    quantity: int = 1


def storefront_products(products: list[Product], search: str = "", category: str = ALL_CATEGORIES) -> list[Product]:
    term = (search or "").strip().lower()
    out = []
    for p in products:
        if not p.active:
            continue
        if category != ALL_CATEGORIES and p.category != category:
            continue
        if term and not (term in p.name.lower() or term in p.category.lower() or term in p.description.lower()):
            continue
        out.append(p)
    return out


# -------------------------
# Persistence (JSON in local_state)
# -------------------------

def load_cart(conn) -> list[CartItem]:
    raw = load_state(conn, CART_KEY, [])
    items: list[CartItem] = []
    for r in raw if isinstance(raw, list) else []:
        try:
            item = CartItem(product_id=str(r["productRef"]), weight=str(r["weightTier"]), quantity=int(r["quantity"]))
        except (KeyError, TypeError, ValueError):
            logger.warning("Dropping unreadable cart entry %r", r)
            continue
        if item.weight not in RETAIL_TIERS:
            logger.warning("Dropping cart entry with unknown weight %r", r)
            continue
        items.append(item)
    return items


def save_cart(conn, cart: list[CartItem]) -> None:
    save_state(
        conn,
        CART_KEY,
        [{"productRef": i.product_id, "weightTier": i.weight, "quantity": int(i.quantity)} for i in cart],
    )


# -------------------------
# Cart operations (return a new list)
# -------------------------

def add_to_cart(cart: list[CartItem], product: Product, weight: str) -> list[CartItem]:
    if weight not in RETAIL_TIERS or weight not in product.available_weights:
        raise ValidationError(f"Weight {weight} is not available for {product.name}.", field="weight")
    if not product.in_stock:
        raise ValidationError(f"{product.name} is out of stock.")
    out = [CartItem(i.product_id, i.weight, i.quantity) for i in cart]
    for item in out:
        if item.product_id == product.id and item.weight == weight:
            item.quantity += 1
            return out
    out.append(CartItem(product_id=product.id, weight=weight, quantity=1))
    return out


def update_quantity(cart: list[CartItem], index: int, delta: int) -> list[CartItem]:
    out = [CartItem(i.product_id, i.weight, i.quantity) for i in cart]
    out[index].quantity += int(delta)
    if out[index].quantity <= 0:
        out.pop(index)
    return out


def remove_item(cart: list[CartItem], index: int) -> list[CartItem]:
    return [i for n, i in enumerate(cart) if n != index]


def cart_count(cart: list[CartItem]) -> int:
    return sum(int(i.quantity) for i in cart)


def cart_lines(cart: list[CartItem], products: list[Product]) -> list[tuple[CartItem, Product, float]]:
    """(item, product, subtotal); items whose product or price vanished are skipped."""
    by_id = {p.id: p for p in products}
    lines = []
    for item in cart:
        p = by_id.get(item.product_id)
        if p is None or item.weight not in p.prices:
            continue
        lines.append((item, p, float(p.prices[item.weight]) * int(item.quantity)))
    return lines


def cart_total(cart: list[CartItem], products: list[Product]) -> float:
    return sum(subtotal for _, _, subtotal in cart_lines(cart, products))


def installments_allowed(payment_method: str, total: float) -> bool:
    return payment_method == "credit" and float(total) > INSTALLMENTS_MIN_TOTAL


def checkout(
    conn,
    cart: list[CartItem],
    products: list[Product],
    *,
    payment_method: str,
    installments: Optional[int] = None,
) -> Sale:
    lines = cart_lines(cart, products)
    if not lines:
        raise ValidationError("Your cart is empty.")
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"Unknown payment method: {payment_method}.", field="payment_method")
    for _, p, _ in lines:
        if not p.active or not p.in_stock:
            raise ValidationError(f"{p.name} is no longer available.")

    total = sum(subtotal for _, _, subtotal in lines)
    note = payment_method
    if installments_allowed(payment_method, total) and installments:
        n = max(1, min(int(installments), MAX_INSTALLMENTS))
        note = f"{payment_method} {n}x"

    sale = add_sale(conn, amount=round(total, 2), customer_id=None, origin=ORIGIN_STOREFRONT, note=note)
    logger.info("Storefront checkout %s: %.2f (%s)", sale.id, sale.amount, note)
    return sale
