from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import pandas as pd

from shop.db import q, x
from shop.errors import ValidationError
from shop.services.catalog import Product, save_products
from shop.services.numbers import parse_percent_br
from shop.services.pricing import (
    DEFAULT_WHOLESALE_MARGINS,
    WHOLESALE_TIERS,
    validate_margin,
    weight_in_kg,
    wholesale_price,
)
from shop.utils import iso_now

logger = logging.getLogger(__name__)

ALL_PRODUCTS = "all"

ACTION_MARGIN_CHANGED = "Margem alterada"
ACTION_GLOBAL_MARGIN = "Margem global aplicada"
ACTION_WHOLESALE_CHANGED = "Margem atacado alterada"
ACTION_GLOBAL_WHOLESALE = "Margem atacado global aplicada"


@dataclass
class HistoryEntry:
    timestamp: str
    user: str
    action: str
    sku: Optional[str] = None
    old_value: Optional[float] = None
    new_value: Optional[float] = None


@dataclass
class MarginEditOutcome:
    products: list[Product]
    changed: list[Product]
    history: list[HistoryEntry]
    margin: float


@dataclass
class MarginEditor:
    """
    Retail margin edit workflow.

    viewing -> editing(product id | ALL_PRODUCTS) -> saved / cancelled -> viewing.
    An invalid value keeps the editor in ``editing`` with ``error`` set.
    """

    state: str = "viewing"
    target: Optional[str] = None
    value: str = ""
    error: str = ""
    last_transition: Optional[str] = None

    @property
    def is_global(self) -> bool:
        return self.state == "editing" and self.target == ALL_PRODUCTS

    def is_editing(self, product_id: Optional[str] = None) -> bool:
        if self.state != "editing":
            return False
        return product_id is None or self.target == product_id

    def begin(self, product: Product) -> None:
        self.state = "editing"
        self.target = product.id
        self.value = f"{product.effective_margin:g}".replace(".", ",")
        self.error = ""
        self.last_transition = None

    def begin_global(self) -> None:
        self.state = "editing"
        self.target = ALL_PRODUCTS
        self.value = ""
        self.error = ""
        self.last_transition = None

    def cancel(self) -> None:
        self._reset()
        self.last_transition = "cancelled"

    def save(self, products: list[Product], user: str, *, timestamp: Optional[str] = None) -> Optional[MarginEditOutcome]:
        if self.state != "editing":
            raise ValidationError("No margin edit in progress.")

        margin = parse_percent_br(str(self.value))
        check = validate_margin(margin)
        if not check.valid:
            self.error = check.message or "Invalid value."
            return None

        ts = timestamp or iso_now()

        if self.target == ALL_PRODUCTS:
            outcome = _apply_margin(products, None, margin, user, ACTION_GLOBAL_MARGIN, ts)
        else:
            if not any(p.id == self.target for p in products):
                self.error = "Product not found."
                return None
            outcome = _apply_margin(products, self.target, margin, user, ACTION_MARGIN_CHANGED, ts)

        self._reset()
        self.last_transition = "saved"
        return outcome

    def _reset(self) -> None:
        self.state = "viewing"
        self.target = None
        self.value = ""
        self.error = ""


def _apply_margin(
    products: list[Product],
    product_id: Optional[str],
    margin: float,
    user: str,
    action: str,
    ts: str,
) -> MarginEditOutcome:
    updated: list[Product] = []
    changed: list[Product] = []
    history: list[HistoryEntry] = []
    for p in products:
        if product_id is not None and p.id != product_id:
            updated.append(p)
            continue
        history.append(
            HistoryEntry(
                timestamp=ts,
                user=user,
                action=action,
                sku=p.sku,
                old_value=p.effective_margin,
                new_value=margin,
            )
        )
        new_p = p.with_margin(margin)
        updated.append(new_p)
        changed.append(new_p)
    return MarginEditOutcome(products=updated, changed=changed, history=history, margin=margin)


def commit_outcome(conn, outcome: MarginEditOutcome) -> None:
    save_products(conn, outcome.products)
    for p in outcome.changed:
        set_retail_margin(conn, p.id, outcome.margin)
    for h in outcome.history:
        append_history(conn, h)
    logger.info("Margin %.2f%% saved for %d product(s)", outcome.margin, len(outcome.changed))


# -------------------------
# Change history
# -------------------------

def append_history(conn, entry: HistoryEntry) -> int:
    return x(
        conn,
        """
        INSERT INTO change_history (ts, user, action, sku, old_value, new_value)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            entry.timestamp,
            entry.user,
            entry.action,
            entry.sku,
            float(entry.old_value) if entry.old_value is not None else None,
            float(entry.new_value) if entry.new_value is not None else None,
        ),
    )


def list_history(conn, *, limit: int = 100) -> list[HistoryEntry]:
    rows = q(
        conn,
        "SELECT ts, user, action, sku, old_value, new_value FROM change_history ORDER BY id DESC LIMIT ?",
        (int(limit),),
    )
    return [
        HistoryEntry(
            timestamp=r["ts"],
            user=r["user"],
            action=r["action"],
            sku=r["sku"],
            old_value=r["old_value"],
            new_value=r["new_value"],
        )
        for r in rows
    ]


# -------------------------
# Retail margin rows
# -------------------------

def list_retail_margins(conn, products: list[Product]) -> dict[str, float]:
    """product id -> margin; rows for unknown products are ignored."""
    ids = {p.id for p in products}
    rows = q(conn, "SELECT product_id, margin FROM retail_margins")
    return {str(r["product_id"]): float(r["margin"]) for r in rows if str(r["product_id"]) in ids}


def retail_margin_for(product: Product, margins: dict[str, float]) -> float:
    # explicit product margin, then the retail row, then derived from prices
    if product.margin is not None:
        return float(product.margin)
    if product.id in margins:
        return margins[product.id]
    return product.effective_margin


def set_retail_margin(conn, product_id: str, margin: float) -> None:
    x(
        conn,
        """
        INSERT INTO retail_margins (product_id, margin) VALUES (?, ?)
        ON CONFLICT(product_id) DO UPDATE SET margin=excluded.margin
        """,
        (str(product_id), float(margin)),
    )


# -------------------------
# Wholesale margins
# -------------------------

def list_wholesale_margins(conn, products: list[Product]) -> dict[str, dict[str, float]]:
    ids = {p.id for p in products}
    rows = q(conn, "SELECT * FROM wholesale_margins")
    out: dict[str, dict[str, float]] = {}
    for r in rows:
        if str(r["product_id"]) not in ids:
            continue
        out[str(r["product_id"])] = {
            "3kg": float(r["margin_3kg"]),
            "5kg": float(r["margin_5kg"]),
            "10kg": float(r["margin_10kg"]),
        }
    return out


def wholesale_margins_for(product_id: str, margins: dict[str, dict[str, float]]) -> dict[str, float]:
    return dict(margins.get(product_id, DEFAULT_WHOLESALE_MARGINS))


def _write_wholesale(conn, product_id: str, m: dict[str, float]) -> None:
    x(
        conn,
        """
        INSERT INTO wholesale_margins (product_id, margin_3kg, margin_5kg, margin_10kg)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(product_id) DO UPDATE SET
            margin_3kg=excluded.margin_3kg,
            margin_5kg=excluded.margin_5kg,
            margin_10kg=excluded.margin_10kg
        """,
        (str(product_id), float(m["3kg"]), float(m["5kg"]), float(m["10kg"])),
    )


def _checked_margin(value, tier: str) -> float:
    check = validate_margin(value)
    if not check.valid:
        raise ValidationError(f"{tier}: {check.message}", field=tier, reason=check.reason)
    return float(value)


def set_wholesale_margin(conn, product: Product, tier: str, value, user: str) -> dict[str, float]:
    if tier not in WHOLESALE_TIERS:
        raise ValidationError(f"Unknown wholesale tier: {tier}.", field="tier")
    margin = _checked_margin(value, tier)

    current = wholesale_margins_for(product.id, list_wholesale_margins(conn, [product]))
    old = current[tier]
    current[tier] = margin
    _write_wholesale(conn, product.id, current)
    append_history(
        conn,
        HistoryEntry(
            timestamp=iso_now(),
            user=user,
            action=f"{ACTION_WHOLESALE_CHANGED} ({tier})",
            sku=product.sku,
            old_value=old,
            new_value=margin,
        ),
    )
    return current


def apply_global_wholesale(conn, products: list[Product], values: dict[str, object], user: str) -> dict[str, float]:
    # Validate all three tiers before writing anything.
    checked = {tier: _checked_margin(values.get(tier), tier) for tier in WHOLESALE_TIERS}

    existing = list_wholesale_margins(conn, products)
    ts = iso_now()
    for p in products:
        old = wholesale_margins_for(p.id, existing)
        _write_wholesale(conn, p.id, checked)
        for tier in WHOLESALE_TIERS:
            append_history(
                conn,
                HistoryEntry(
                    timestamp=ts,
                    user=user,
                    action=f"{ACTION_GLOBAL_WHOLESALE} ({tier})",
                    sku=p.sku,
                    old_value=old[tier],
                    new_value=checked[tier],
                ),
            )
    logger.info("Global wholesale margins %s applied to %d product(s)", checked, len(products))
    return checked


def wholesale_table(products: list[Product], margins: dict[str, dict[str, float]]) -> pd.DataFrame:
    rows = []
    for p in products:
        m = wholesale_margins_for(p.id, margins)
        row = {"sku": p.sku, "name": p.name, "base_cost": p.base_cost}
        for tier in WHOLESALE_TIERS:
            row[f"margin_{tier}"] = m[tier]
            row[f"price_{tier}"] = round(wholesale_price(p.base_cost, weight_in_kg(tier), m[tier]), 2)
        rows.append(row)
    return pd.DataFrame(rows)


def retail_table(products: list[Product], margins: dict[str, float]) -> pd.DataFrame:
    rows = [
        {
            "sku": p.sku,
            "name": p.name,
            "base_cost": p.base_cost,
            "margin": retail_margin_for(p, margins),
            "price_200g": round(p.prices["200g"], 2),
            "price_500g": round(p.prices["500g"], 2),
            "price_1kg": round(p.prices["1kg"], 2),
        }
        for p in products
    ]
    return pd.DataFrame(rows)
