"""
Remote mirror of the local tables.

Writes are two-phase: the caller commits to the local SQLite database first
(that copy is authoritative), then ``RemoteSync`` pushes the rows in a worker
thread. A failed push never rolls the local state back; it is logged and kept
as a ``RemoteWriteError`` notice until the page drains it with ``notices()``.

The remote side only needs "select all", "upsert by primary key" and "delete by
primary key" per table.
``SQLiteRemoteStore`` implements that over a shared SQLite file.
"""
from __future__ import annotations

import json
import logging
import sqlite3
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import asdict
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol

import streamlit as st

from shop.errors import RemoteWriteError

logger = logging.getLogger(__name__)

TABLES = ("products", "retail_margins", "wholesale_margins", "expenses", "customers", "sales")

# in-memory field -> remote column
REMOTE_COLUMNS: dict[str, dict[str, str]] = {
    "products": {
        "id": "id",
        "sku": "sku",
        "name": "nome",
        "category": "categoria",
        "description": "descricao",
        "base_cost": "preco_compra",
        "prices": "prices",
        "image_url": "imagem_url",
        "unit": "unidade",
        "active": "ativo",
        "in_stock": "emEstoque",
        "available_weights": "availableWeights",
        "margin": "margem",
    },
    "retail_margins": {"product_id": "productId", "margin": "margem"},
    "wholesale_margins": {
        "product_id": "productId",
        "margin_3kg": "margem_3kg",
        "margin_5kg": "margem_5kg",
        "margin_10kg": "margem_10kg",
    },
    "expenses": {
        "id": "id",
        "name": "nome",
        "amount": "valor",
        "category": "categoria",
        "date": "data",
        "note": "observacoes",
    },
    "customers": {
        "id": "id",
        "name": "nome",
        "address": "endereco",
        "phone": "telefone",
        "active": "ativo",
        "created_at": "created_at",
    },
    "sales": {
        "id": "id",
        "date": "date",
        "customer_id": "customer_id",
        "amount": "valor",
        "origin": "origem",
        "note": "observacoes",
    },
}

PRIMARY_KEYS = {t: ("productId" if t.endswith("_margins") else "id") for t in TABLES}

# Sale origin values differ on the remote side.
_ORIGIN_TO_REMOTE = {"storefront": "loja", "manual": "manual"}
_ORIGIN_FROM_REMOTE = {v: k for k, v in _ORIGIN_TO_REMOTE.items()}


def _check_table(table: str) -> None:
    if table not in REMOTE_COLUMNS:
        raise ValueError(f"Unknown remote table: {table}")


def to_remote(table: str, record: dict[str, Any]) -> dict[str, Any]:
    _check_table(table)
    cols = REMOTE_COLUMNS[table]
    row = {cols[k]: v for k, v in record.items() if k in cols}
    if table == "sales" and "origem" in row:
        row["origem"] = _ORIGIN_TO_REMOTE.get(row["origem"], row["origem"])
    return row


def from_remote(table: str, row: dict[str, Any]) -> dict[str, Any]:
    _check_table(table)
    back = {v: k for k, v in REMOTE_COLUMNS[table].items()}
    record = {back[k]: v for k, v in row.items() if k in back}
    if table == "sales" and "origin" in record:
        record["origin"] = _ORIGIN_FROM_REMOTE.get(record["origin"], record["origin"])
    return record


class RemoteStore(Protocol):
    def select_all(self, table: str) -> list[dict[str, Any]]: ...

    def upsert(self, table: str, rows: list[dict[str, Any]]) -> None: ...

    def delete(self, table: str, keys: list[str]) -> None: ...


class SQLiteRemoteStore:
    """One ``(pk, payload JSON)`` table per entity."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.path), timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure(self, conn: sqlite3.Connection, table: str) -> None:
        _check_table(table)
        conn.execute(f"CREATE TABLE IF NOT EXISTS {table} (pk TEXT PRIMARY KEY, payload TEXT NOT NULL)")

    def select_all(self, table: str) -> list[dict[str, Any]]:
        conn = self._connect()
        try:
            self._ensure(conn, table)
            rows = conn.execute(f"SELECT payload FROM {table} ORDER BY rowid").fetchall()
            return [json.loads(r["payload"]) for r in rows]
        finally:
            conn.close()

    def upsert(self, table: str, rows: list[dict[str, Any]]) -> None:
        pk = PRIMARY_KEYS[table]
        conn = self._connect()
        try:
            self._ensure(conn, table)
            conn.executemany(
                f"INSERT INTO {table} (pk, payload) VALUES (?, ?) "
                "ON CONFLICT(pk) DO UPDATE SET payload=excluded.payload",
                [(str(r[pk]), json.dumps(r, ensure_ascii=False)) for r in rows],
            )
            conn.commit()
        finally:
            conn.close()

    def delete(self, table: str, keys: list[str]) -> None:
        conn = self._connect()
        try:
            self._ensure(conn, table)
            conn.executemany(f"DELETE FROM {table} WHERE pk=?", [(str(k),) for k in keys])
            conn.commit()
        finally:
            conn.close()


class RemoteSync:
    def __init__(self, store: Optional[RemoteStore], *, max_workers: int = 1):
        self.store = store
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="remote-sync") if store else None
        self._lock = threading.Lock()
        self._pending: list[Future] = []
        self._failures: list[RemoteWriteError] = []

    @property
    def enabled(self) -> bool:
        return self.store is not None

    def push(self, table: str, records: Iterable[dict[str, Any]]) -> Optional[Future]:
        """Phase two of a write: mirror already-committed local records."""
        if not self.enabled:
            return None
        rows = [to_remote(table, r) for r in records]
        if not rows:
            return None
        return self._submit("upsert", table, rows)

    def remove(self, table: str, keys: Iterable[str]) -> Optional[Future]:
        """Mirror local deletes by primary key."""
        if not self.enabled:
            return None
        _check_table(table)
        keys = [str(k) for k in keys]
        if not keys:
            return None
        return self._submit("delete", table, keys)

    def _submit(self, op: str, table: str, payload: list) -> Future:
        fut = self._executor.submit(self._write, op, table, payload)
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()] + [fut]
        return fut

    def _write(self, op: str, table: str, payload: list) -> bool:
        try:
            getattr(self.store, op)(table, payload)
            return True
        except Exception as e:
            logger.exception("Remote %s on %s failed (%d rows)", op, table, len(payload))
            with self._lock:
                self._failures.append(RemoteWriteError(f"Could not sync {table}: {e}", table=table))
            return False

    def pull(self, table: str) -> list[dict[str, Any]]:
        if not self.enabled:
            return []
        return [from_remote(table, r) for r in self.store.select_all(table)]

    def notices(self) -> list[RemoteWriteError]:
        with self._lock:
            out, self._failures = self._failures, []
        return out

    def wait(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)


def records(items: Iterable[Any]) -> list[dict[str, Any]]:
    return [asdict(i) for i in items]


@st.cache_resource
def get_remote_sync(remote_db_path: Optional[Path]) -> RemoteSync:
    if remote_db_path is None:
        return RemoteSync(None)
    logger.info("Mirroring to remote store at %s", remote_db_path)
    return RemoteSync(SQLiteRemoteStore(remote_db_path))
