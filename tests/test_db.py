from shop.db import ensure_schema, q, x


def test_ensure_schema_is_idempotent(conn):
    x(conn, "INSERT INTO local_state (key, value) VALUES (?, ?)", ("cart", "[]"))
    ensure_schema(conn)
    ensure_schema(conn)
    assert [r["key"] for r in q(conn, "SELECT key FROM local_state")] == ["cart"]


def test_products_table_has_sort_order(conn):
    cols = [r["name"] for r in q(conn, "PRAGMA table_info(products)")]
    assert "sort_order" in cols
