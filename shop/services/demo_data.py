from __future__ import annotations

from datetime import date

from shop.db import q, ensure_schema
from shop.services.catalog import Product, product_id_for_sku, save_product
from shop.services.expenses import add_expense
from shop.services.margins import set_retail_margin
from shop.services.pricing import DEFAULT_MARGIN, retail_prices

# sku, name, category, description, cost per kg, in stock
DEMO_PRODUCTS = [
    ("CX-001", "Castanha de Caju Premium", "Castanhas", "Castanha de caju selecionada, torrada e levemente salgada", 80.00, True),
    ("AMD-002", "Amêndoas Orgânicas", "Castanhas", "Amêndoas naturais cultivadas organicamente, ricas em nutrientes", 95.00, True),
    ("NOZ-003", "Nozes Chilenas", "Castanhas", "Nozes chilenas frescas, ideais para receitas e lanches", 120.00, False),
    ("PST-004", "Pistache Torrado", "Castanhas", "Pistache premium torrado e salgado, sabor incomparável", 145.00, True),
    ("AVL-005", "Avelãs Europeias", "Castanhas", "Avelãs selecionadas importadas da Europa", 105.00, True),
    ("CPA-006", "Castanha do Pará", "Castanhas", "Castanha do Pará brasileira, rica em selênio", 75.00, True),
    ("TMP-001", "Páprica Defumada", "Temperos", "Páprica defumada premium, ideal para carnes e risotos", 55.00, True),
    ("TMP-002", "Mix de Ervas Finas", "Temperos", "Blend de tomilho, alecrim, manjericão e orégano", 68.00, True),
    ("FRT-001", "Manga Desidratada", "Frutas Desidratadas", "Manga desidratada naturalmente doce", 42.00, True),
    ("FRT-002", "Cranberry Desidratado", "Frutas Desidratadas", "Cranberry levemente adoçado", 65.00, True),
]

# name, amount, category, (month offset from today, day), note
DEMO_EXPENSES = [
    ("Castanha de Caju - 50kg", 4000.00, "Mercadoria", (0, 5), None),
    ("Sacos Plásticos 1kg", 450.00, "Embalagens", (0, 8), None),
    ("Transporte - Pedido #1234", 280.00, "Frete", (0, 10), None),
    ("Amêndoas Importadas - 30kg", 2850.00, "Mercadoria", (0, 12), "Importação Europa"),
    ("Etiquetas Personalizadas", 320.00, "Embalagens", (0, 15), "1000 unidades"),
    ("Caixas de Papelão", 180.00, "Embalagens", (1, 5), None),
    ("Pistache - 20kg", 2900.00, "Mercadoria", (1, 10), None),
    ("Frete Transportadora", 450.00, "Frete", (1, 15), None),
]


def _month_back(today: date, months: int, day: int) -> date:
    y, m = today.year, today.month - months
    while m <= 0:
        m += 12
        y -= 1
    return date(y, m, day)


def upsert_reference_data(conn) -> None:
    ensure_schema(conn)


def wipe_all(conn) -> None:
    # Keep schema, delete data. The logged-in user survives a wipe.
    for t in ["change_history", "sales", "customers", "expenses", "wholesale_margins", "retail_margins", "products"]:
        conn.execute(f"DELETE FROM {t};")
    conn.execute("DELETE FROM local_state WHERE key <> 'currentUser';")
    conn.commit()


def load_demo_data(conn, *, today: date | None = None) -> None:
    upsert_reference_data(conn)
    today = today or date.today()

    have_skus = {r["sku"] for r in q(conn, "SELECT sku FROM products")}
    have_ids = {r["id"] for r in q(conn, "SELECT id FROM products")}
    for i, (sku, name, category, description, cost, in_stock) in enumerate(DEMO_PRODUCTS):
        if sku in have_skus:
            continue
        pid = str(i + 1) if str(i + 1) not in have_ids else product_id_for_sku(sku)
        p = Product(
            id=pid,
            sku=sku,
            name=name,
            category=category,
            description=description,
            base_cost=cost,
            prices=retail_prices(cost, DEFAULT_MARGIN),
            in_stock=in_stock,
        )
        save_product(conn, p)
        set_retail_margin(conn, p.id, DEFAULT_MARGIN)

    if not q(conn, "SELECT 1 FROM expenses LIMIT 1"):
        for name, amount, category, (back, day), note in DEMO_EXPENSES:
            add_expense(
                conn,
                name=name,
                amount=amount,
                category=category,
                expense_date=_month_back(today, back, day),
                note=note,
            )
