from datetime import date

import pytest

from shop.services.catalog import list_products
from shop.services.demo_data import DEMO_EXPENSES, DEMO_PRODUCTS, load_demo_data, wipe_all
from shop.services.expenses import list_expenses
from shop.services.margins import list_retail_margins
from shop.session import login, restore_session


def test_load_demo_data_is_repeatable(conn):
    load_demo_data(conn, today=date(2024, 3, 20))
    load_demo_data(conn, today=date(2024, 3, 20))

    products = list_products(conn)
    assert len(products) == len(DEMO_PRODUCTS)
    assert products[0].id == "1"
    assert products[0].prices["1kg"] == pytest.approx(108.0)
    assert len(list_retail_margins(conn, products)) == len(DEMO_PRODUCTS)
    assert len(list_expenses(conn)) == len(DEMO_EXPENSES)


def test_demo_expenses_span_two_months(conn):
    load_demo_data(conn, today=date(2024, 1, 20))
    months = {e.date[:7] for e in list_expenses(conn)}
    assert months == {"2024-01", "2023-12"}


def test_wipe_keeps_logged_in_user(conn):
    login(conn, "admin@amar.com", "x")
    load_demo_data(conn)
    wipe_all(conn)
    assert list_products(conn) == []
    assert list_expenses(conn) == []
    assert restore_session(conn).user == "admin@amar.com"
