from __future__ import annotations

import logging

from shop.db import q, x, xmany
from shop.remote import RemoteSync, records
from shop.services.catalog import Product, list_products, save_products
from shop.services.customers import list_customers, list_sales
from shop.services.expenses import list_expenses

logger = logging.getLogger(__name__)


def local_records(conn, table: str) -> list[dict]:
    if table == "products":
        return records(list_products(conn))
    if table == "retail_margins":
        rows = q(conn, "SELECT product_id, margin FROM retail_margins")
        return [dict(r) for r in rows]
    if table == "wholesale_margins":
        rows = q(conn, "SELECT product_id, margin_3kg, margin_5kg, margin_10kg FROM wholesale_margins")
        return [dict(r) for r in rows]
    if table == "expenses":
        return records(list_expenses(conn))
    if table == "customers":
        return records(list_customers(conn))
    if table == "sales":
        return records(list_sales(conn))
    raise ValueError(f"Unknown table: {table}")


def mirror(conn, sync: RemoteSync, *tables: str) -> None:
    """Push the committed local rows of ``tables`` to the remote store."""
    for table in tables:
        sync.push(table, local_records(conn, table))


def pull_all(conn, sync: RemoteSync) -> dict[str, int]:
    """Replace local rows with the remote copy, table by table (remote wins)."""
    counts: dict[str, int] = {}

    products = [Product(**r) for r in sync.pull("products")]
    # a SKU appearing under two ids remotely keeps the last row only
    by_sku = {p.sku: p for p in products}
    products = [p for p in products if by_sku[p.sku] is p]
    if products:
        x(conn, "DELETE FROM products")
        save_products(conn, products)
    counts["products"] = len(products)

    rm = sync.pull("retail_margins")
    xmany(
        conn,
        "INSERT OR REPLACE INTO retail_margins (product_id, margin) VALUES (?, ?)",
        [(r["product_id"], float(r["margin"])) for r in rm],
    )
    counts["retail_margins"] = len(rm)

    wm = sync.pull("wholesale_margins")
    xmany(
        conn,
        "INSERT OR REPLACE INTO wholesale_margins (product_id, margin_3kg, margin_5kg, margin_10kg) VALUES (?, ?, ?, ?)",
        [(r["product_id"], float(r["margin_3kg"]), float(r["margin_5kg"]), float(r["margin_10kg"])) for r in wm],
    )
    counts["wholesale_margins"] = len(wm)

    ex = sync.pull("expenses")
    xmany(
        conn,
        "INSERT OR REPLACE INTO expenses (id, name, amount, category, expense_date, note) VALUES (?, ?, ?, ?, ?, ?)",
        [(r["id"], r["name"], float(r["amount"]), r["category"], r["date"], r.get("note")) for r in ex],
    )
    counts["expenses"] = len(ex)

    cu = sync.pull("customers")
    xmany(
        conn,
        "INSERT OR REPLACE INTO customers (id, name, address, phone, active, created_at) VALUES (?, ?, ?, ?, ?, ?)",
        [(r["id"], r["name"], r.get("address"), r.get("phone"), int(bool(r.get("active", True))), r["created_at"]) for r in cu],
    )
    counts["customers"] = len(cu)

    sa = sync.pull("sales")
    xmany(
        conn,
        "INSERT OR REPLACE INTO sales (id, sale_ts, customer_id, amount, origin, note) VALUES (?, ?, ?, ?, ?, ?)",
        [(r["id"], r["date"], r.get("customer_id"), float(r["amount"]), r["origin"], r.get("note")) for r in sa],
    )
    counts["sales"] = len(sa)

    logger.info("Pulled remote tables: %s", counts)
    return counts
