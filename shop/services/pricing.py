from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

DEFAULT_MARGIN = 35.0
MAX_MARGIN = 1000.0

RETAIL_TIERS = ("200g", "500g", "1kg")
WHOLESALE_TIERS = ("3kg", "5kg", "10kg")

DEFAULT_WHOLESALE_MARGINS = {"3kg": 25.0, "5kg": 22.0, "10kg": 18.0}

_WEIGHT_KG = {
    "200g": 0.2,
    "500g": 0.5,
    "1kg": 1.0,
    "3kg": 3.0,
    "5kg": 5.0,
    "10kg": 10.0,
}


@dataclass(frozen=True)
class MarginValidation:
    valid: bool
    reason: Optional[str] = None  # not_a_number / negative / too_large
    message: Optional[str] = None


def weight_in_kg(tier: str) -> float:
    try:
        return _WEIGHT_KG[tier]
    except KeyError:
        raise ValueError(f"Unknown weight tier: {tier!r}.")


def sale_price(base_cost_per_kg: float, margin_pct: float) -> float:
    return float(base_cost_per_kg) * (1 + float(margin_pct) / 100)


def retail_prices(base_cost_per_kg: float, margin_pct: float) -> dict[str, float]:
    per_kg = sale_price(base_cost_per_kg, margin_pct)
    return {
        "200g": per_kg * 0.2,
        "500g": per_kg * 0.5,
        "1kg": per_kg,
    }


def wholesale_price(base_cost_per_kg: float, tier_kg: float, margin_pct: float) -> float:
    return float(base_cost_per_kg) * float(tier_kg) * (1 + float(margin_pct) / 100)


def derive_margin(base_cost_per_kg: Optional[float], prices: Optional[Mapping[str, float]]) -> float:
    """
    Inverse of retail_prices() using the 1kg tier.
    Falls back to DEFAULT_MARGIN when either side is zero or missing.
    """
    per_kg = (prices or {}).get("1kg")
    if not _nonzero_number(base_cost_per_kg) or not _nonzero_number(per_kg):
        return DEFAULT_MARGIN
    return (float(per_kg) / float(base_cost_per_kg) - 1) * 100


def validate_margin(value: Any) -> MarginValidation:
    try:
        margin = float(value)
    except (TypeError, ValueError):
        margin = math.nan

    if math.isnan(margin):
        return MarginValidation(False, "not_a_number", "Margin must be a number.")
    if margin < 0:
        return MarginValidation(False, "negative", "Margin cannot be negative.")
    if margin > MAX_MARGIN:
        return MarginValidation(False, "too_large", f"Margin too high (maximum {MAX_MARGIN:.0f}%).")
    return MarginValidation(True)


def _nonzero_number(v: Any) -> bool:
    if v is None:
        return False
    try:
        f = float(v)
    except (TypeError, ValueError):
        return False
    return not math.isnan(f) and f != 0
