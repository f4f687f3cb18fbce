from __future__ import annotations

import streamlit as st

from shop.config import configure_logging

configure_logging()

st.set_page_config(page_title="Amar Castanhas", page_icon="🌰", layout="wide")

pages = [
    st.Page("home.py", title="Home", icon="🏠"),
    st.Page("pages/1_🛍️_Storefront.py", title="Storefront", icon="🛍️"),
    st.Page("pages/2_🔐_Login.py", title="Login", icon="🔐"),
    st.Page("pages/3_📦_Products.py", title="Products", icon="📦"),
    st.Page("pages/4_🏷️_Retail_Margins.py", title="Retail Margins", icon="🏷️"),
    st.Page("pages/5_🏭_Wholesale_Margins.py", title="Wholesale Margins", icon="🏭"),
    st.Page("pages/6_💸_Expenses.py", title="Expenses", icon="💸"),
    st.Page("pages/7_👥_Customers_&_Sales.py", title="Customers & Sales", icon="👥"),
    st.Page("pages/8_🧪_Data_Management.py", title="Data Management", icon="🧪"),
]

st.navigation(pages).run()
