from __future__ import annotations

import re
import unicodedata
from datetime import datetime, timezone


def iso_now() -> str:
    # Use UTC ISO timestamps for consistency.
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def normalize_key(s: str) -> str:
    """Lower-case, trimmed, with diacritics removed ("Preço" -> "preco")."""
    decomposed = unicodedata.normalize("NFD", s or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower().strip()


def format_brl(value: float) -> str:
    # 1234.5 -> "R$ 1.234,50"
    s = f"{float(value):,.2f}"
    return "R$ " + s.replace(",", "_").replace(".", ",").replace("_", ".")


def format_pct(value: float) -> str:
    return f"{float(value):.2f}%"


def month_key(iso_date: str) -> str:
    return str(iso_date)[:7]


def normalize_pt_br_label(text: str) -> str:
    """Display fixes for known typos in supplier product names."""
    if not text:
        return text

    def _keep_case(upper: str, lower: str):
        return lambda m: upper if m.group(0) == m.group(0).upper() else lower

    s = re.sub(r"\bCARAMELI3ZADA\b", _keep_case("CARAMELIZADA", "Caramelizada"), text, flags=re.I)
    s = re.sub(r"\bC/SAL\b", _keep_case("COM SAL", "com sal"), s, flags=re.I)
    s = re.sub(r"\bS/SAL\b", _keep_case("SEM SAL", "sem sal"), s, flags=re.I)
    return s
