"""
CSV reading for catalog imports.

The delimiter is picked from the header line (``;`` only when it outnumbers
``,``) and pandas does the quote-aware split (``""`` inside quotes is a
literal quote). Every header and value is trimmed; cells missing from a
short row come back as ``None``.
"""
from __future__ import annotations

import io
from typing import Optional

import pandas as pd

BOM = "\ufeff"


def detect_delimiter(header_line: str) -> str:
    return ";" if header_line.count(";") > header_line.count(",") else ","


def _read_rows(text: str, delim: str) -> list[list]:
    # one column per possible field, so short and long rows both load
    width = max(line.count(delim) for line in text.split("\n")) + 1
    df = pd.read_csv(
        io.StringIO(text),
        sep=delim,
        header=None,
        names=list(range(width)),
        dtype=object,
        keep_default_na=False,
        skipinitialspace=True,
        skip_blank_lines=True,
        engine="python",
    )
    return df.values.tolist()


def _cells(row: list) -> list[str]:
    # padding past the end of a row is not a string
    out = list(row)
    while out and not isinstance(out[-1], str):
        out.pop()
    return [str(v).strip() if isinstance(v, str) else "" for v in out]


def split_line(line: str, delim: str) -> list[str]:
    rows = _read_rows(line, delim)
    if not rows:
        return [""]
    return _cells(rows[0])


def parse_csv(csv_text: str) -> list[dict[str, Optional[str]]]:
    text = (csv_text or "")
    if text.startswith(BOM):
        text = text[len(BOM):]
    text = text.replace("\r\n", "\n").replace("\r", "\n").strip()
    if not text:
        return []

    lines = [line for line in text.split("\n") if line.strip()]
    if len(lines) < 2:
        return []

    delim = detect_delimiter(lines[0])
    rows = _read_rows("\n".join(lines), delim)
    headers = [h.lstrip(BOM).strip() for h in _cells(rows[0])]

    records: list[dict[str, Optional[str]]] = []
    for row in rows[1:]:
        values = _cells(row)
        records.append({h: (values[idx] if idx < len(values) else None) for idx, h in enumerate(headers)})
    return records
