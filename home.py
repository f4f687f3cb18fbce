from __future__ import annotations

import streamlit as st

from shop.config import get_settings
from shop.db import get_conn, ensure_schema
from shop.remote import get_remote_sync
from shop.services.demo_data import upsert_reference_data
from shop.session import current_session

st.title("🌰 Amar Castanhas")
st.caption("Specialty nuts, spices and dried fruit: public storefront plus back office for pricing, expenses and sales.")

settings = get_settings()
conn = get_conn(settings.db_path)
ensure_schema(conn)
upsert_reference_data(conn)
sync = get_remote_sync(settings.remote_db_path)

ctx = current_session(conn)

with st.sidebar:
    st.subheader("Environment")
    st.write(f"**Data directory:** `{settings.data_dir}`")
    st.write(f"**Database:** `{settings.db_path.name}`")
    st.write(f"**Currency:** {settings.currency}")
    st.write(f"**Remote mirror:** {'on' if sync.enabled else 'off'}")
    st.write(f"**Signed in as:** {ctx.user if ctx else '-'}")

st.info(
    "Customers shop in **🛍️ Storefront**. Staff log in via **🔐 Login** to manage products, margins, "
    "expenses and sales. After logging in, **🧪 Data Management** loads a sample catalog.",
    icon="ℹ️",
)
