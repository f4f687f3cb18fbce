from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Optional

import pandas as pd

from shop.db import q, x
from shop.errors import ValidationError
from shop.session import load_state, save_state
from shop.utils import month_key

logger = logging.getLogger(__name__)

BASE_CATEGORIES = ("Mercadoria", "Embalagens", "Frete", "Outros")
CUSTOM_CATEGORIES_KEY = "expense_custom_categories"
ALL_MONTHS = "all"


@dataclass
class Expense:
    id: str
    name: str
    amount: float
    category: str
    date: str  # ISO date
    note: Optional[str] = None


def _row_to_expense(r) -> Expense:
    return Expense(
        id=str(r["id"]),
        name=str(r["name"]),
        amount=float(r["amount"]),
        category=str(r["category"]),
        date=str(r["expense_date"]),
        note=r["note"],
    )


def expense_categories(conn) -> list[str]:
    return list(BASE_CATEGORIES) + list(load_state(conn, CUSTOM_CATEGORIES_KEY, []))


def add_custom_category(conn, name: str) -> list[str]:
    name = str(name or "").strip()
    if not name:
        raise ValidationError("Category name is required.", field="category")
    if name in expense_categories(conn):
        raise ValidationError("Category already exists.", field="category")
    custom = list(load_state(conn, CUSTOM_CATEGORIES_KEY, [])) + [name]
    save_state(conn, CUSTOM_CATEGORIES_KEY, custom)
    return expense_categories(conn)


def _clean(conn, name: str, amount, category: str, expense_date) -> tuple[str, float, str, str]:
    name = str(name or "").strip()
    if not name:
        raise ValidationError("Expense name is required.", field="name")
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValidationError("Please enter a valid amount.", field="amount")
    if value <= 0:
        raise ValidationError("Please enter a valid amount.", field="amount")
    if category not in expense_categories(conn):
        raise ValidationError(f"Unknown category: {category}.", field="category")
    if isinstance(expense_date, date):
        expense_date = expense_date.isoformat()
    try:
        d = date.fromisoformat(str(expense_date)[:10]).isoformat()
    except ValueError:
        raise ValidationError("Invalid date.", field="date")
    return name, value, category, d


def list_expenses(conn) -> list[Expense]:
    rows = q(conn, "SELECT * FROM expenses ORDER BY expense_date DESC, rowid DESC")
    return [_row_to_expense(r) for r in rows]


def add_expense(conn, *, name: str, amount, category: str, expense_date, note: Optional[str] = None) -> Expense:
    name, value, category, d = _clean(conn, name, amount, category, expense_date)
    e = Expense(id=uuid.uuid4().hex, name=name, amount=value, category=category, date=d, note=(note or "").strip() or None)
    x(
        conn,
        "INSERT INTO expenses (id, name, amount, category, expense_date, note) VALUES (?, ?, ?, ?, ?, ?)",
        (e.id, e.name, e.amount, e.category, e.date, e.note),
    )
    return e


def update_expense(
    conn, expense_id: str, *, name: str, amount, category: str, expense_date, note: Optional[str] = None
) -> Expense:
    if not q(conn, "SELECT 1 FROM expenses WHERE id=?", (str(expense_id),)):
        raise ValidationError("Expense not found.")
    name, value, category, d = _clean(conn, name, amount, category, expense_date)
    note = (note or "").strip() or None
    x(
        conn,
        "UPDATE expenses SET name=?, amount=?, category=?, expense_date=?, note=? WHERE id=?",
        (name, value, category, d, note, str(expense_id)),
    )
    return Expense(id=str(expense_id), name=name, amount=value, category=category, date=d, note=note)


def delete_expense(conn, expense_id: str) -> None:
    x(conn, "DELETE FROM expenses WHERE id=?", (str(expense_id),))


# -------------------------
# Monthly reporting
# -------------------------

def available_months(expenses: list[Expense], today: Optional[date] = None) -> list[str]:
    """'all' first, then every month with data plus the current month, ascending."""
    today = today or date.today()
    months = {month_key(e.date) for e in expenses}
    months.add(today.strftime("%Y-%m"))
    return [ALL_MONTHS] + sorted(months)


def step_month(months: list[str], selected: str, delta: int) -> str:
    real = [m for m in months if m != ALL_MONTHS]
    if not real:
        return selected
    if selected == ALL_MONTHS or selected not in real:
        return real[0]
    idx = real.index(selected)
    nxt = min(max(idx + int(delta), 0), len(real) - 1)
    return real[nxt]


@dataclass
class MonthlySummary:
    month: str
    total: float
    by_category: pd.DataFrame  # category, amount, share_pct
    expenses: list[Expense]


def monthly_summary(expenses: list[Expense], month: str) -> MonthlySummary:
    selected = [e for e in expenses if month == ALL_MONTHS or month_key(e.date) == month]
    selected.sort(key=lambda e: e.date, reverse=True)

    df = pd.DataFrame([{"category": e.category, "amount": e.amount} for e in selected], columns=["category", "amount"])
    total = float(df["amount"].sum()) if not df.empty else 0.0

    by_cat = df.groupby("category", as_index=False)["amount"].sum()
    by_cat["share_pct"] = (by_cat["amount"] / total * 100.0).round(1) if total else 0.0
    by_cat = by_cat.sort_values("amount", ascending=False).reset_index(drop=True)

    return MonthlySummary(month=month, total=total, by_category=by_cat, expenses=selected)
