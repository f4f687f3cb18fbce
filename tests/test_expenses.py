from datetime import date

import pytest

from shop.errors import ValidationError
from shop.services.expenses import (
    ALL_MONTHS,
    BASE_CATEGORIES,
    Expense,
    add_custom_category,
    add_expense,
    available_months,
    delete_expense,
    expense_categories,
    list_expenses,
    monthly_summary,
    step_month,
    update_expense,
)


def _e(eid, amount, category, d):
    return Expense(id=eid, name=f"gasto {eid}", amount=amount, category=category, date=d)


def test_custom_categories_persist(conn):
    assert expense_categories(conn) == list(BASE_CATEGORIES)
    add_custom_category(conn, " Marketing ")
    assert expense_categories(conn)[-1] == "Marketing"
    with pytest.raises(ValidationError):
        add_custom_category(conn, "Marketing")
    with pytest.raises(ValidationError):
        add_custom_category(conn, "Frete")


def test_add_and_list_expenses(conn):
    add_expense(conn, name="Frete", amount=50, category="Frete", expense_date=date(2024, 3, 1))
    add_expense(conn, name="Caju 50kg", amount="4000", category="Mercadoria", expense_date="2024-03-05", note=" lote 7 ")
    rows = list_expenses(conn)
    assert [e.name for e in rows] == ["Caju 50kg", "Frete"]
    assert rows[0].amount == 4000.0
    assert rows[0].note == "lote 7"
    assert rows[1].note is None


@pytest.mark.parametrize(
    "kwargs, field",
    [
        ({"name": "", "amount": 10, "category": "Frete", "expense_date": "2024-01-01"}, "name"),
        ({"name": "x", "amount": 0, "category": "Frete", "expense_date": "2024-01-01"}, "amount"),
        ({"name": "x", "amount": "dez", "category": "Frete", "expense_date": "2024-01-01"}, "amount"),
        ({"name": "x", "amount": 10, "category": "Viagem", "expense_date": "2024-01-01"}, "category"),
        ({"name": "x", "amount": 10, "category": "Frete", "expense_date": "2024-13-01"}, "date"),
    ],
)
def test_add_expense_validation(conn, kwargs, field):
    with pytest.raises(ValidationError) as exc:
        add_expense(conn, **kwargs)
    assert exc.value.field == field


def test_update_and_delete_expense(conn):
    e = add_expense(conn, name="Sacos", amount=100, category="Embalagens", expense_date="2024-02-02")
    update_expense(conn, e.id, name="Sacos 1kg", amount=120, category="Embalagens", expense_date="2024-02-03")
    (stored,) = list_expenses(conn)
    assert (stored.name, stored.amount, stored.date) == ("Sacos 1kg", 120.0, "2024-02-03")

    delete_expense(conn, e.id)
    assert list_expenses(conn) == []
    with pytest.raises(ValidationError):
        update_expense(conn, e.id, name="x", amount=1, category="Frete", expense_date="2024-01-01")


def test_available_months_includes_current_month():
    expenses = [_e("1", 10, "Frete", "2024-01-15"), _e("2", 10, "Frete", "2023-12-01")]
    assert available_months(expenses, today=date(2024, 3, 10)) == [ALL_MONTHS, "2023-12", "2024-01", "2024-03"]
    assert available_months([], today=date(2024, 3, 10)) == [ALL_MONTHS, "2024-03"]


def test_step_month_clamps():
    months = [ALL_MONTHS, "2024-01", "2024-02", "2024-03"]
    assert step_month(months, "2024-02", -1) == "2024-01"
    assert step_month(months, "2024-01", -1) == "2024-01"
    assert step_month(months, "2024-03", +1) == "2024-03"
    assert step_month(months, ALL_MONTHS, +1) == "2024-01"


def test_monthly_summary():
    expenses = [
        _e("1", 100, "Mercadoria", "2024-03-05"),
        _e("2", 50, "Frete", "2024-03-20"),
        _e("3", 999, "Frete", "2024-02-01"),
    ]
    summary = monthly_summary(expenses, "2024-03")
    assert summary.total == 150.0
    assert [e.id for e in summary.expenses] == ["2", "1"]
    assert list(summary.by_category["category"]) == ["Mercadoria", "Frete"]
    assert list(summary.by_category["share_pct"]) == [66.7, 33.3]

    everything = monthly_summary(expenses, ALL_MONTHS)
    assert everything.total == 1149.0
    assert len(everything.expenses) == 3


def test_monthly_summary_empty_month():
    summary = monthly_summary([], "2024-03")
    assert summary.total == 0.0
    assert summary.by_category.empty
    assert summary.expenses == []
