from __future__ import annotations

from pathlib import Path

import pytest

from shop.db import _connect, ensure_schema
from shop.services.catalog import Product
from shop.services.pricing import DEFAULT_MARGIN, retail_prices


@pytest.fixture
def conn():
    c = _connect(Path(":memory:"))
    ensure_schema(c)
    yield c
    c.close()


def make_product(pid: str = "1", sku: str = "CX-001", cost: float = 80.0, **kw) -> Product:
    margin = kw.pop("margin", None)
    prices = retail_prices(cost, DEFAULT_MARGIN if margin is None else margin)
    return Product(id=pid, sku=sku, name=kw.pop("name", f"Produto {sku}"), base_cost=cost, prices=prices, margin=margin, **kw)


@pytest.fixture
def product() -> Product:
    return make_product()
