from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Optional

from shop.db import q, x, xmany
from shop.errors import ValidationError
from shop.services.pricing import DEFAULT_MARGIN, RETAIL_TIERS, derive_margin, retail_prices

logger = logging.getLogger(__name__)

CATEGORIES = ("Castanhas", "Temperos", "Frutas Desidratadas")
DEFAULT_CATEGORY = "Castanhas"

_SKU_ID_STRIP = re.compile(r"[^a-zA-Z0-9_-]")


@dataclass
class Product:
    id: str
    sku: str
    name: str
    category: str = DEFAULT_CATEGORY
    description: str = ""
    base_cost: float = 0.0  # per kg
    prices: dict[str, float] = field(default_factory=lambda: retail_prices(0.0, DEFAULT_MARGIN))
    image_url: str = ""
    unit: str = "kg"
    active: bool = True
    in_stock: bool = True
    available_weights: list[str] = field(default_factory=lambda: list(RETAIL_TIERS))
    margin: Optional[float] = None

    @property
    def effective_margin(self) -> float:
        if self.margin is not None:
            return float(self.margin)
        return derive_margin(self.base_cost, self.prices)

    def with_margin(self, margin: float) -> "Product":
        return replace(self, margin=float(margin), prices=retail_prices(self.base_cost, float(margin)))


def product_id_for_sku(sku: str) -> str:
    # "CX 001/A" -> "p-cx001a"
    return "p-" + _SKU_ID_STRIP.sub("", str(sku)).lower()


def unique_product_id(base_id: str, sku: str, taken: dict[str, str]) -> str:
    # taken: id -> sku already holding that id
    candidate = base_id
    n = 2
    while candidate in taken and taken[candidate] != sku:
        candidate = f"{base_id}-{n}"
        n += 1
    return candidate


def _taken_ids(conn) -> dict[str, str]:
    return {str(r["id"]): str(r["sku"]) for r in q(conn, "SELECT id, sku FROM products")}


def normalize_category(raw: Optional[str]) -> str:
    s = (raw or "").strip()
    for c in CATEGORIES:
        if s.lower() == c.lower():
            return c
    return DEFAULT_CATEGORY


def _row_to_product(r) -> Product:
    return Product(
        id=str(r["id"]),
        sku=str(r["sku"]),
        name=str(r["name"]),
        category=str(r["category"]),
        description=str(r["description"] or ""),
        base_cost=float(r["base_cost"]),
        prices={"200g": float(r["price_200g"]), "500g": float(r["price_500g"]), "1kg": float(r["price_1kg"])},
        image_url=str(r["image_url"] or ""),
        unit=str(r["unit"] or "kg"),
        active=bool(r["active"]),
        in_stock=bool(r["in_stock"]),
        available_weights=list(json.loads(r["available_weights"] or "[]")) or list(RETAIL_TIERS),
        margin=float(r["margin"]) if r["margin"] is not None else None,
    )


def _product_params(p: Product, sort_order: int) -> tuple:
    return (
        p.id,
        p.sku.strip(),
        p.name,
        p.category,
        p.description,
        float(p.base_cost),
        float(p.prices["200g"]),
        float(p.prices["500g"]),
        float(p.prices["1kg"]),
        p.image_url,
        p.unit,
        int(bool(p.active)),
        int(bool(p.in_stock)),
        json.dumps(list(p.available_weights)),
        float(p.margin) if p.margin is not None else None,
        int(sort_order),
    )


_UPSERT_SQL = """
INSERT INTO products (
    id, sku, name, category, description, base_cost,
    price_200g, price_500g, price_1kg,
    image_url, unit, active, in_stock, available_weights, margin, sort_order
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
    sku=excluded.sku,
    name=excluded.name,
    category=excluded.category,
    description=excluded.description,
    base_cost=excluded.base_cost,
    price_200g=excluded.price_200g,
    price_500g=excluded.price_500g,
    price_1kg=excluded.price_1kg,
    image_url=excluded.image_url,
    unit=excluded.unit,
    active=excluded.active,
    in_stock=excluded.in_stock,
    available_weights=excluded.available_weights,
    margin=excluded.margin,
    sort_order=excluded.sort_order
"""


def list_products(conn, *, active_only: bool = False) -> list[Product]:
    where = "WHERE active=1" if active_only else ""
    rows = q(conn, f"SELECT * FROM products {where} ORDER BY sort_order, rowid")
    return [_row_to_product(r) for r in rows]


def get_product(conn, product_id: str) -> Optional[Product]:
    rows = q(conn, "SELECT * FROM products WHERE id=?", (str(product_id),))
    return _row_to_product(rows[0]) if rows else None


def save_products(conn, products: list[Product]) -> None:
    """Upserts the whole collection; list position becomes the display order."""
    xmany(conn, _UPSERT_SQL, [_product_params(p, i) for i, p in enumerate(products)])


def save_product(conn, product: Product) -> None:
    rows = q(conn, "SELECT sort_order FROM products WHERE id=?", (product.id,))
    if rows:
        order = int(rows[0]["sort_order"])
    else:
        order = int(q(conn, "SELECT COALESCE(MAX(sort_order), -1) + 1 AS n FROM products")[0]["n"])
    x(conn, _UPSERT_SQL, _product_params(product, order))


def _clean_form(sku: str, name: str, base_cost) -> tuple[str, str, float]:
    sku = str(sku or "").strip()
    name = str(name or "").strip()
    if not name:
        raise ValidationError("Name is required.", field="name")
    if not sku:
        raise ValidationError("SKU is required.", field="sku")
    try:
        cost = float(base_cost)
    except (TypeError, ValueError):
        raise ValidationError("Invalid purchase price.", field="base_cost")
    if cost <= 0:
        raise ValidationError("Invalid purchase price.", field="base_cost")
    return sku, name, cost


def create_product(
    conn,
    *,
    sku: str,
    name: str,
    base_cost: float,
    category: str = DEFAULT_CATEGORY,
    description: str = "",
    image_url: str = "",
    unit: str = "kg",
    in_stock: bool = True,
) -> Product:
    sku, name, cost = _clean_form(sku, name, base_cost)
    if q(conn, "SELECT 1 FROM products WHERE sku=?", (sku,)):
        raise ValidationError(f"SKU {sku} already exists.", field="sku")

    product = Product(
        id=unique_product_id(product_id_for_sku(sku), sku, _taken_ids(conn)),
        sku=sku,
        name=name,
        category=normalize_category(category),
        description=description or "",
        base_cost=cost,
        prices=retail_prices(cost, DEFAULT_MARGIN),
        image_url=image_url or "",
        unit=unit or "kg",
        active=True,
        in_stock=bool(in_stock),
    )
    save_product(conn, product)
    logger.info("Created product %s (%s)", product.sku, product.id)
    return product


def update_product(
    conn,
    product_id: str,
    *,
    sku: str,
    name: str,
    base_cost: float,
    category: str = DEFAULT_CATEGORY,
    description: str = "",
    image_url: str = "",
    unit: str = "kg",
    in_stock: bool = True,
) -> Product:
    """Edits keep the product's current margin and recompute its prices from the new cost."""
    current = get_product(conn, product_id)
    if current is None:
        raise ValidationError("Product not found.")
    sku, name, cost = _clean_form(sku, name, base_cost)
    clash = q(conn, "SELECT id FROM products WHERE sku=? AND id<>?", (sku, current.id))
    if clash:
        raise ValidationError(f"SKU {sku} already exists.", field="sku")

    margin = current.effective_margin
    updated = replace(
        current,
        sku=sku,
        name=name,
        category=normalize_category(category),
        description=description or "",
        base_cost=cost,
        prices=retail_prices(cost, margin),
        image_url=image_url or "",
        unit=unit or "kg",
        in_stock=bool(in_stock),
    )
    save_product(conn, updated)
    return updated


def delete_product(conn, product_id: str) -> None:
    x(conn, "DELETE FROM products WHERE id=?", (str(product_id),))
    x(conn, "DELETE FROM retail_margins WHERE product_id=?", (str(product_id),))
    x(conn, "DELETE FROM wholesale_margins WHERE product_id=?", (str(product_id),))
    logger.info("Deleted product %s", product_id)


def toggle_active(conn, product_id: str) -> bool:
    x(conn, "UPDATE products SET active = 1 - active WHERE id=?", (str(product_id),))
    p = get_product(conn, product_id)
    return bool(p and p.active)


def toggle_stock(conn, product_id: str) -> bool:
    x(conn, "UPDATE products SET in_stock = 1 - in_stock WHERE id=?", (str(product_id),))
    p = get_product(conn, product_id)
    return bool(p and p.in_stock)
