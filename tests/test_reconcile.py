import pytest

from conftest import make_product
from shop.errors import ParseError
from shop.services.reconcile import (
    EXPORT_HEADER,
    export_csv,
    import_csv_bytes,
    reconcile_import,
    resolve_field,
    resolve_pricing,
)


def test_resolve_field_matches_synonyms_ignoring_case_and_accents():
    assert resolve_field({"Preço de Compra": "80"}, "cost") == "80"
    assert resolve_field({"PRECO_COMPRA": "81"}, "cost") == "81"
    assert resolve_field({"Descrição": "x"}, "description") == "x"
    assert resolve_field({"Lucro %": "30"}, "margin") == "30"
    assert resolve_field({"foo": "1"}, "cost") is None


def test_resolve_field_first_header_in_file_order_wins():
    record = {"custo": "70", "Preço base": "90"}
    assert resolve_field(record, "cost") == "70"


def test_resolve_pricing_cost_and_margin():
    assert resolve_pricing("80", None, "35") == pytest.approx((80.0, 35.0))


def test_resolve_pricing_margin_from_cost_and_sale():
    cost, margin = resolve_pricing("100", "R$ 150,00", None)
    assert cost == pytest.approx(100.0)
    assert margin == pytest.approx(50.0)


def test_resolve_pricing_cost_back_solved_from_sale():
    cost, margin = resolve_pricing(None, "135", None)
    assert margin == pytest.approx(35.0)
    assert cost == pytest.approx(100.0)


def test_resolve_pricing_nothing_usable():
    assert resolve_pricing(None, None, None) == (0.0, 35.0)
    # zero margin in a file counts as missing
    assert resolve_pricing("100", None, "0")[1] == pytest.approx(35.0)


def test_reimport_reuses_identity_and_flags():
    existing = [
        make_product("1", "CX-1", active=False, in_stock=False),
        make_product("2", "CX-2"),
    ]
    records = [
        {"SKU": "CX-1", "Nome": "Caju novo", "Preço de Compra": "90", "Margem": "40"},
        {"sku": "NEW-1", "nome": "Noz", "custo": "50"},
        {"SKU": "CX-1", "Nome": "linha repetida"},
    ]
    result = reconcile_import(existing, records, now_ms_value=1)

    assert [p.sku for p in result.products] == ["CX-1", "CX-2", "NEW-1"]
    assert (result.created, result.updated, result.skipped_duplicates) == (1, 1, 1)
    assert len(result.imported) == 2

    cx1 = result.products[0]
    assert cx1.id == "1"
    assert cx1.name == "Caju novo"
    assert cx1.active is False
    assert cx1.in_stock is False
    assert cx1.margin == pytest.approx(40.0)
    assert cx1.prices["1kg"] == pytest.approx(126.0)

    new = result.products[2]
    assert new.id == "p-new-1"
    assert new.margin == pytest.approx(35.0)
    assert new.active is True


def test_reimporting_the_same_file_is_idempotent():
    records = [
        {"SKU": "A-1", "Nome": "Amêndoa", "Preço de Compra": "95"},
        {"SKU": "B-2", "Nome": "Nozes", "Preço de Venda": "162"},
    ]
    first = reconcile_import([], records, now_ms_value=1)
    second = reconcile_import(first.products, records, now_ms_value=2)

    assert [(p.id, p.sku) for p in second.products] == [(p.id, p.sku) for p in first.products]
    assert second.created == 0
    assert second.updated == 2
    assert len({p.sku for p in second.products}) == len(second.products)


def test_missing_sku_and_name_are_synthesized():
    result = reconcile_import([], [{"Categoria": "temperos"}, {"Nome": "Manga", "Categoria": "Doces"}], now_ms_value=123)
    first, second = result.products
    assert first.sku == "SKU-123-0"
    assert first.name == "Sem nome"
    assert first.category == "Temperos"
    assert second.sku == "SKU-123-1"
    assert second.category == "Castanhas"


def test_colliding_ids_get_a_suffix():
    existing = [make_product("p-ab", "A/B")]
    result = reconcile_import(existing, [{"SKU": "AB", "Nome": "x"}], now_ms_value=1)
    assert result.products[-1].id == "p-ab-2"
    assert result.products[0].id == "p-ab"


def test_stock_flag_from_file_for_new_products():
    result = reconcile_import([], [{"SKU": "X", "Estoque": "não"}, {"SKU": "Y", "Estoque": "sim"}], now_ms_value=1)
    assert [p.in_stock for p in result.products] == [False, True]


def test_import_csv_bytes_semicolon_file():
    raw = "\ufeffSKU;Nome;Preço de Venda\nX1;Caju;R$ 135,00\n".encode("utf-8")
    result = import_csv_bytes([], raw, now_ms_value=1)
    (p,) = result.products
    assert p.sku == "X1"
    assert p.base_cost == pytest.approx(100.0)
    assert p.prices["1kg"] == pytest.approx(135.0)


def test_import_csv_bytes_rejects_undecodable_file():
    with pytest.raises(ParseError):
        import_csv_bytes([], b"\xff\xfe\x00S\x00K\x00U")


def test_import_csv_bytes_rejects_header_only_file():
    with pytest.raises(ParseError):
        import_csv_bytes([make_product()], b"SKU,Nome\n")


def test_export_csv_active_products_only():
    products = [
        make_product("1", "CX-1", name="Caju", margin=35.0),
        make_product("2", "CX-2", name="Oculto", active=False),
    ]
    lines = export_csv(products).splitlines()
    assert lines[0] == ",".join(EXPORT_HEADER)
    assert lines[1] == "CX-1,Caju,Castanhas,108.00,35.00"
    assert len(lines) == 2

