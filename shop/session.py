from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

import streamlit as st

from shop.db import q, x
from shop.errors import ValidationError

logger = logging.getLogger(__name__)

CURRENT_USER_KEY = "currentUser"
SESSION_STATE_KEY = "amar_session"

_EMAIL = re.compile(r"\S+@\S+\.\S+")


# -------------------------
# Local state (key -> JSON)
# -------------------------

def load_state(conn, key: str, default: Any = None) -> Any:
    rows = q(conn, "SELECT value FROM local_state WHERE key=?", (key,))
    if not rows:
        return default
    try:
        return json.loads(rows[0]["value"])
    except ValueError:
        logger.warning("Discarding unreadable local state %r", key)
        return default


def save_state(conn, key: str, value: Any) -> None:
    x(
        conn,
        "INSERT INTO local_state (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
        (key, json.dumps(value)),
    )


def clear_state(conn, key: str) -> None:
    x(conn, "DELETE FROM local_state WHERE key=?", (key,))


# -------------------------
# Session
# -------------------------

@dataclass(frozen=True)
class SessionContext:
    user: str


def login(conn, email: str, password: str) -> SessionContext:
    """Local mode: any well-formed e-mail with a non-empty password is accepted."""
    email = str(email or "").strip().lower()
    if not email or not password:
        raise ValidationError("Please fill in all fields.")
    if not _EMAIL.fullmatch(email):
        raise ValidationError("Invalid e-mail.", field="email")
    save_state(conn, CURRENT_USER_KEY, email)
    logger.info("User %s logged in", email)
    return SessionContext(user=email)


def logout(conn) -> None:
    clear_state(conn, CURRENT_USER_KEY)


def restore_session(conn) -> Optional[SessionContext]:
    user = load_state(conn, CURRENT_USER_KEY)
    return SessionContext(user=str(user)) if user else None


def current_session(conn) -> Optional[SessionContext]:
    if SESSION_STATE_KEY not in st.session_state:
        st.session_state[SESSION_STATE_KEY] = restore_session(conn)
    return st.session_state[SESSION_STATE_KEY]


def set_session(ctx: Optional[SessionContext]) -> None:
    st.session_state[SESSION_STATE_KEY] = ctx


def require_session(conn) -> SessionContext:
    ctx = current_session(conn)
    if ctx is None:
        st.warning("Admin area. Please log in first.", icon="🔐")
        st.page_link("pages/2_🔐_Login.py", label="Go to login", icon="🔐")
        st.stop()
    return ctx
