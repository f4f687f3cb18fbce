from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import streamlit as st

CONFIG_FILE_NAME = "settings.json"
ENV_DATA_DIR = "AMAR_DATA_DIR"
ENV_REMOTE_DB = "AMAR_REMOTE_DB"
ENV_LOG_LEVEL = "AMAR_LOG_LEVEL"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    currency: str = "BRL"
    remote_db_path: Optional[Path] = None


def _default_data_dir() -> Path:
    return Path.home() / ".amar_castanhas"


def _load_persisted_settings(data_dir: Path) -> dict:
    cfg = data_dir / CONFIG_FILE_NAME
    if cfg.exists():
        try:
            return json.loads(cfg.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logging.getLogger(__name__).warning("Ignoring unreadable %s", cfg)
            return {}
    return {}


def configure_logging(level: Optional[str] = None) -> None:
    level_name = (level or os.getenv(ENV_LOG_LEVEL, "INFO")).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)


def persist_data_dir(data_dir_str: str) -> None:
    data_dir = Path(data_dir_str).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)

    cfg = data_dir / CONFIG_FILE_NAME
    payload = {"data_dir": str(data_dir)}
    cfg.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    # Update session for immediate effect
    st.session_state["amar_data_dir"] = str(data_dir)


def _remote_db_path() -> Optional[Path]:
    raw = os.getenv(ENV_REMOTE_DB, "").strip()
    if not raw:
        return None
    return Path(raw).expanduser().resolve()


@st.cache_resource
def get_settings() -> Settings:
    # Priority order:
    # 1) Session state (set via Data Management page)
    # 2) Environment variable
    # 3) Persisted settings in default folder
    # 4) Default folder
    if "amar_data_dir" in st.session_state:
        data_dir = Path(st.session_state["amar_data_dir"]).expanduser().resolve()
    elif os.getenv(ENV_DATA_DIR):
        data_dir = Path(os.getenv(ENV_DATA_DIR, "")).expanduser().resolve()
    else:
        default_dir = _default_data_dir()
        persisted = _load_persisted_settings(default_dir)
        data_dir = Path(persisted.get("data_dir", default_dir)).expanduser().resolve()

    data_dir.mkdir(parents=True, exist_ok=True)
    db_path = data_dir / "app.db"
    return Settings(data_dir=data_dir, db_path=db_path, remote_db_path=_remote_db_path())
