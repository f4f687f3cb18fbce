from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from shop.db import q, x
from shop.errors import ReferentialIntegrityError, ValidationError
from shop.utils import iso_now

logger = logging.getLogger(__name__)

ORIGIN_STOREFRONT = "storefront"
ORIGIN_MANUAL = "manual"


@dataclass
class Customer:
    id: str
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    active: bool = True
    created_at: str = ""


@dataclass
class Sale:
    id: str
    date: str
    amount: float
    origin: str
    customer_id: Optional[str] = None
    note: Optional[str] = None


def _blank_to_none(s: Optional[str]) -> Optional[str]:
    if s is None:
        return None
    s = str(s).strip()
    return s if s else None


def format_phone_br(value: Optional[str]) -> str:
    if not value:
        return "-"
    d = re.sub(r"\D", "", value)
    digits = d[2:] if d.startswith("55") and len(d) > 11 else d
    if len(digits) >= 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:11]}"
    if len(digits) == 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:10]}"
    if len(digits) == 9:
        return f"{digits[:5]}-{digits[5:]}"
    if len(digits) == 8:
        return f"{digits[:4]}-{digits[4:]}"
    return value


# -------------------------
# Customers
# -------------------------

def _row_to_customer(r) -> Customer:
    return Customer(
        id=str(r["id"]),
        name=str(r["name"]),
        address=r["address"],
        phone=r["phone"],
        active=bool(r["active"]),
        created_at=str(r["created_at"]),
    )


def list_customers(conn, *, active_only: bool = False) -> list[Customer]:
    where = "WHERE active=1" if active_only else ""
    rows = q(conn, f"SELECT * FROM customers {where} ORDER BY created_at DESC, rowid DESC")
    return [_row_to_customer(r) for r in rows]


def get_customer(conn, customer_id: str) -> Optional[Customer]:
    rows = q(conn, "SELECT * FROM customers WHERE id=?", (str(customer_id),))
    return _row_to_customer(rows[0]) if rows else None


def add_customer(conn, *, name: str, address: Optional[str] = None, phone: Optional[str] = None) -> Customer:
    name = str(name or "").strip()
    if not name:
        raise ValidationError("Customer name is required.", field="name")
    c = Customer(
        id=f"c-{uuid.uuid4().hex[:12]}",
        name=name,
        address=_blank_to_none(address),
        phone=_blank_to_none(phone),
        active=True,
        created_at=iso_now(),
    )
    x(
        conn,
        "INSERT INTO customers (id, name, address, phone, active, created_at) VALUES (?, ?, ?, ?, 1, ?)",
        (c.id, c.name, c.address, c.phone, c.created_at),
    )
    return c


def update_customer(
    conn, customer_id: str, *, name: str, address: Optional[str] = None, phone: Optional[str] = None
) -> Customer:
    current = get_customer(conn, customer_id)
    if current is None:
        raise ValidationError("Customer not found.")
    name = str(name or "").strip()
    if not name:
        raise ValidationError("Customer name is required.", field="name")
    x(
        conn,
        "UPDATE customers SET name=?, address=?, phone=? WHERE id=?",
        (name, _blank_to_none(address), _blank_to_none(phone), current.id),
    )
    return get_customer(conn, current.id)


def toggle_customer_active(conn, customer_id: str) -> bool:
    x(conn, "UPDATE customers SET active = 1 - active WHERE id=?", (str(customer_id),))
    c = get_customer(conn, customer_id)
    return bool(c and c.active)


def delete_customer(conn, customer_id: str) -> None:
    n = q(conn, "SELECT COUNT(1) AS n FROM sales WHERE customer_id=?", (str(customer_id),))[0]["n"]
    if int(n) > 0:
        logger.info("Refused to delete customer %s: %d linked sale(s)", customer_id, int(n))
        raise ReferentialIntegrityError("Cannot delete this customer: there are sales linked to it.")
    x(conn, "DELETE FROM customers WHERE id=?", (str(customer_id),))


# -------------------------
# Sales
# -------------------------

def _row_to_sale(r) -> Sale:
    return Sale(
        id=str(r["id"]),
        date=str(r["sale_ts"]),
        amount=float(r["amount"]),
        origin=str(r["origin"]),
        customer_id=r["customer_id"],
        note=r["note"],
    )


def _clean_amount(amount) -> float:
    if isinstance(amount, str):
        amount = amount.replace(",", ".")
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValidationError("Please enter a valid amount.", field="amount")
    if value <= 0:
        raise ValidationError("Please enter a valid amount.", field="amount")
    return value


def list_sales(conn) -> list[Sale]:
    rows = q(conn, "SELECT * FROM sales ORDER BY sale_ts DESC, rowid DESC")
    return [_row_to_sale(r) for r in rows]


def add_sale(
    conn,
    *,
    amount,
    customer_id: Optional[str] = None,
    origin: str = ORIGIN_MANUAL,
    note: Optional[str] = None,
    sale_ts: Optional[str] = None,
) -> Sale:
    if origin not in (ORIGIN_STOREFRONT, ORIGIN_MANUAL):
        raise ValidationError(f"Invalid sale origin: {origin}.", field="origin")
    value = _clean_amount(amount)
    customer_id = _blank_to_none(customer_id)
    if customer_id is not None and get_customer(conn, customer_id) is None:
        raise ValidationError("Customer not found.", field="customer_id")

    s = Sale(
        id=f"s-{uuid.uuid4().hex[:12]}",
        date=sale_ts or iso_now(),
        amount=value,
        origin=origin,
        customer_id=customer_id,
        note=_blank_to_none(note),
    )
    x(
        conn,
        "INSERT INTO sales (id, sale_ts, customer_id, amount, origin, note) VALUES (?, ?, ?, ?, ?, ?)",
        (s.id, s.date, s.customer_id, s.amount, s.origin, s.note),
    )
    return s


def update_sale(conn, sale_id: str, *, amount, customer_id: Optional[str] = None, note: Optional[str] = None) -> None:
    if not q(conn, "SELECT 1 FROM sales WHERE id=?", (str(sale_id),)):
        raise ValidationError("Sale not found.")
    value = _clean_amount(amount)
    customer_id = _blank_to_none(customer_id)
    if customer_id is not None and get_customer(conn, customer_id) is None:
        raise ValidationError("Customer not found.", field="customer_id")
    x(
        conn,
        "UPDATE sales SET amount=?, customer_id=?, note=? WHERE id=?",
        (value, customer_id, _blank_to_none(note), str(sale_id)),
    )


def delete_sale(conn, sale_id: str) -> None:
    x(conn, "DELETE FROM sales WHERE id=?", (str(sale_id),))


def sales_by_customer(conn) -> pd.DataFrame:
    rows = q(
        conn,
        """
        SELECT COALESCE(c.name, '(storefront / anonymous)') AS customer,
               COUNT(s.id) AS n_sales,
               ROUND(COALESCE(SUM(s.amount), 0), 2) AS total
        FROM sales s
        LEFT JOIN customers c ON c.id = s.customer_id
        GROUP BY s.customer_id
        ORDER BY total DESC
        """,
    )
    return pd.DataFrame([dict(r) for r in rows], columns=["customer", "n_sales", "total"])
