import pytest

from shop.errors import RemoteWriteError
from shop.remote import RemoteSync, SQLiteRemoteStore, from_remote, records, to_remote
from shop.services.customers import Sale


def test_column_mapping():
    row = to_remote("products", {"id": "1", "name": "Caju", "base_cost": 80.0, "in_stock": True})
    assert row == {"id": "1", "nome": "Caju", "preco_compra": 80.0, "emEstoque": True}
    assert from_remote("products", row) == {"id": "1", "name": "Caju", "base_cost": 80.0, "in_stock": True}


def test_sale_origin_is_translated():
    assert to_remote("sales", {"id": "s1", "origin": "storefront"})["origem"] == "loja"
    assert from_remote("sales", {"id": "s1", "origem": "loja"})["origin"] == "storefront"
    assert from_remote("sales", {"id": "s1", "origem": "manual"})["origin"] == "manual"


def test_unknown_table():
    with pytest.raises(ValueError):
        to_remote("orders", {})


def test_sqlite_store_upserts_by_primary_key(tmp_path):
    store = SQLiteRemoteStore(tmp_path / "remote.db")
    store.upsert("retail_margins", [{"productId": "1", "margem": 30}])
    store.upsert("retail_margins", [{"productId": "1", "margem": 40}, {"productId": "2", "margem": 10}])
    assert store.select_all("retail_margins") == [{"productId": "1", "margem": 40}, {"productId": "2", "margem": 10}]

    store.delete("retail_margins", ["1"])
    assert store.select_all("retail_margins") == [{"productId": "2", "margem": 10}]


def test_push_then_pull(tmp_path):
    sync = RemoteSync(SQLiteRemoteStore(tmp_path / "remote.db"))
    sale = Sale(id="s-1", date="2024-03-01T10:00:00+00:00", amount=54.0, origin="storefront")
    sync.push("sales", records([sale]))
    sync.wait(timeout=10)

    assert sync.pull("sales") == [
        {"id": "s-1", "date": sale.date, "amount": 54.0, "origin": "storefront", "customer_id": None, "note": None}
    ]
    assert sync.notices() == []

    sync.remove("sales", ["s-1"])
    sync.wait(timeout=10)
    assert sync.pull("sales") == []


class _BrokenStore:
    def select_all(self, table):
        return []

    def upsert(self, table, rows):
        raise RuntimeError("connection refused")

    def delete(self, table, keys):
        raise RuntimeError("connection refused")


def test_failed_push_becomes_a_notice():
    sync = RemoteSync(_BrokenStore())
    future = sync.push("expenses", [{"id": "e1", "name": "Frete", "amount": 10.0}])
    sync.wait(timeout=10)

    assert future.result() is False
    (notice,) = sync.notices()
    assert isinstance(notice, RemoteWriteError)
    assert notice.table == "expenses"
    assert "connection refused" in str(notice)
    assert sync.notices() == []


def test_disabled_sync_is_a_no_op():
    sync = RemoteSync(None)
    assert not sync.enabled
    assert sync.push("products", [{"id": "1"}]) is None
    assert sync.remove("products", ["1"]) is None
    assert sync.pull("products") == []
    sync.wait()


def test_nothing_to_push():
    sync = RemoteSync(_BrokenStore())
    assert sync.push("sales", []) is None
    assert sync.notices() == []
