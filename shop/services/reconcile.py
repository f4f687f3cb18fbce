from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import pandas as pd

from shop.errors import ParseError
from shop.services.catalog import Product, normalize_category, product_id_for_sku, unique_product_id
from shop.services.csv_tokenizer import parse_csv
from shop.services.numbers import parse_br_number, parse_percent_br
from shop.services.pricing import DEFAULT_MARGIN, RETAIL_TIERS, retail_prices
from shop.utils import normalize_key, now_ms

logger = logging.getLogger(__name__)

# Accepted spreadsheet headers per product field (compared without case/accents).
HEADER_SYNONYMS: dict[str, tuple[str, ...]] = {
    "name": ("nome", "produto"),
    "cost": ("preco_compra", "Preço de Compra", "Preço de compra", "custo", "Preço base"),
    "sale_price": ("Preço_venda", "preço de venda", "Preço de venda", "venda", "1kg"),
    "margin": ("margem", "lucro", "lucro %", "% lucro", "margem %"),
    "category": ("categoria",),
    "description": ("descricao", "descrição"),
    "sku": ("sku",),
    "image_url": ("imagem_url", "imagem", "url imagem"),
    "in_stock": ("emestoque", "em_estoque", "estoque"),
}

_NORMALIZED_SYNONYMS = {f: {normalize_key(c) for c in cands} for f, cands in HEADER_SYNONYMS.items()}

_FALSE_FLAGS = {"false", "0", "nao", "no", "n"}

EXPORT_HEADER = ["SKU", "Nome", "Categoria", "Preço de Venda", "Margem"]


@dataclass
class ImportResult:
    products: list[Product]
    imported: list[Product] = field(default_factory=list)
    created: int = 0
    updated: int = 0
    skipped_duplicates: int = 0


def resolve_field(record: Mapping[str, Any], field_name: str) -> Any:
    """First header (in file order) matching one of the field's synonyms."""
    wanted = _NORMALIZED_SYNONYMS[field_name]
    for header, value in record.items():
        if normalize_key(header) in wanted:
            return value
    return None


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _is_set(v: float) -> bool:
    return not math.isnan(v)


def _stock_flag(raw: Any) -> bool:
    s = _text(raw)
    if not s:
        return True
    return normalize_key(s) not in _FALSE_FLAGS


def resolve_pricing(raw_cost: Any, raw_sale: Any, raw_margin: Any) -> tuple[float, float]:
    """
    Returns (cost, margin) from whichever of cost / sale price / margin the row has.
    Margin falls back to DEFAULT_MARGIN; a missing cost is back-solved from the sale price.
    """
    cost = parse_br_number(raw_cost)
    sale = parse_br_number(raw_sale)
    margin = parse_percent_br(raw_margin)

    if (not _is_set(margin) or margin <= 0) and _is_set(cost) and cost > 0 and _is_set(sale) and sale > 0:
        margin = (sale / cost - 1) * 100
    if not _is_set(margin) or margin <= 0:
        margin = DEFAULT_MARGIN
    if (not _is_set(cost) or cost <= 0) and _is_set(sale):
        cost = sale / (1 + margin / 100)

    return (cost if _is_set(cost) else 0.0), margin


def reconcile_import(
    existing: list[Product],
    records: list[Mapping[str, Any]],
    *,
    now_ms_value: Optional[int] = None,
) -> ImportResult:
    stamp = now_ms() if now_ms_value is None else int(now_ms_value)
    existing_by_sku = {p.sku.strip(): p for p in existing}
    taken_ids = {p.id: p.sku.strip() for p in existing}
    seen_sku: set[str] = set()

    imported: list[Product] = []
    skipped = 0

    for index, row in enumerate(records):
        sku = _text(resolve_field(row, "sku")) or f"SKU-{stamp}-{index}"
        if sku in seen_sku:
            skipped += 1
            continue
        seen_sku.add(sku)

        cost, margin = resolve_pricing(
            resolve_field(row, "cost"),
            resolve_field(row, "sale_price"),
            resolve_field(row, "margin"),
        )
        in_stock = _stock_flag(resolve_field(row, "in_stock"))

        reuse = existing_by_sku.get(sku)
        if reuse is not None:
            product_id = reuse.id
            active = reuse.active
            in_stock = reuse.in_stock
        else:
            product_id = unique_product_id(product_id_for_sku(sku), sku, taken_ids)
            active = True
        taken_ids[product_id] = sku

        imported.append(
            Product(
                id=product_id,
                sku=sku,
                name=_text(resolve_field(row, "name")) or "Sem nome",
                category=normalize_category(_text(resolve_field(row, "category"))),
                description=_text(resolve_field(row, "description")),
                base_cost=cost,
                prices=retail_prices(cost, margin),
                image_url=_text(resolve_field(row, "image_url")),
                unit="kg",
                active=active,
                in_stock=in_stock,
                available_weights=list(RETAIL_TIERS),
                margin=margin,
            )
        )

    # SKU stays unique: re-imported SKUs replace their product in place, new ones go last.
    by_sku = {p.sku: p for p in imported}
    merged = [by_sku.pop(p.sku.strip(), p) for p in existing]
    created = len(by_sku)
    merged.extend(p for p in imported if p.sku in by_sku)

    return ImportResult(
        products=merged,
        imported=imported,
        created=created,
        updated=len(imported) - created,
        skipped_duplicates=skipped,
    )


def import_csv_bytes(existing: list[Product], raw: bytes, *, now_ms_value: Optional[int] = None) -> ImportResult:
    """Decode + tokenize + reconcile. Raises ParseError without touching ``existing``."""
    try:
        text = raw.decode("utf-8-sig")
        records = parse_csv(text)
    except (UnicodeDecodeError, ValueError) as e:
        logger.warning("CSV import failed: %s", e)
        raise ParseError("Could not import CSV. Check the file format.") from e

    if not records:
        raise ParseError("Could not import CSV. The file has no data rows.")

    result = reconcile_import(existing, records, now_ms_value=now_ms_value)
    logger.info(
        "CSV import: %d rows, %d created, %d updated, %d duplicate rows skipped",
        len(records), result.created, result.updated, result.skipped_duplicates,
    )
    return result


def export_csv(products: list[Product]) -> str:
    rows = [
        {
            "SKU": p.sku,
            "Nome": p.name,
            "Categoria": p.category,
            "Preço de Venda": float(p.prices["1kg"]),
            "Margem": float(p.effective_margin),
        }
        for p in products
        if p.active
    ]
    df = pd.DataFrame(rows, columns=EXPORT_HEADER)
    return df.to_csv(index=False, float_format="%.2f", lineterminator="\n")
