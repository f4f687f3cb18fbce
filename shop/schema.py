SCHEMA_SQL = r"""
-- Catalog
CREATE TABLE IF NOT EXISTS products (
  id TEXT PRIMARY KEY,
  sku TEXT NOT NULL UNIQUE,
  name TEXT NOT NULL,
  category TEXT NOT NULL DEFAULT 'Castanhas',
  description TEXT NOT NULL DEFAULT '',
  base_cost REAL NOT NULL DEFAULT 0,      -- per kg
  price_200g REAL NOT NULL DEFAULT 0,
  price_500g REAL NOT NULL DEFAULT 0,
  price_1kg REAL NOT NULL DEFAULT 0,
  image_url TEXT NOT NULL DEFAULT '',
  unit TEXT NOT NULL DEFAULT 'kg',
  active INTEGER NOT NULL DEFAULT 1,      -- storefront visibility
  in_stock INTEGER NOT NULL DEFAULT 1,
  available_weights TEXT NOT NULL DEFAULT '["200g","500g","1kg"]',  -- JSON list
  margin REAL,                            -- explicit margin %, NULL = derive from prices
  sort_order INTEGER NOT NULL DEFAULT 0
);

-- One row per product; orphans are ignored on read
CREATE TABLE IF NOT EXISTS retail_margins (
  product_id TEXT PRIMARY KEY,
  margin REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS wholesale_margins (
  product_id TEXT PRIMARY KEY,
  margin_3kg REAL NOT NULL,
  margin_5kg REAL NOT NULL,
  margin_10kg REAL NOT NULL
);

-- Expense ledger
CREATE TABLE IF NOT EXISTS expenses (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  amount REAL NOT NULL,
  category TEXT NOT NULL,
  expense_date TEXT NOT NULL,             -- ISO date
  note TEXT
);

CREATE TABLE IF NOT EXISTS customers (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  address TEXT,
  phone TEXT,
  active INTEGER NOT NULL DEFAULT 1,
  created_at TEXT NOT NULL                -- ISO datetime
);

-- customer_id is not a FOREIGN KEY: the delete guard lives in services/customers.py
CREATE TABLE IF NOT EXISTS sales (
  id TEXT PRIMARY KEY,
  sale_ts TEXT NOT NULL,                  -- ISO datetime
  customer_id TEXT,                       -- NULL = anonymous / storefront
  amount REAL NOT NULL,
  origin TEXT NOT NULL,                   -- storefront / manual
  note TEXT
);

-- Append-only audit trail
CREATE TABLE IF NOT EXISTS change_history (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  ts TEXT NOT NULL,
  user TEXT NOT NULL,
  action TEXT NOT NULL,
  sku TEXT,
  old_value REAL,
  new_value REAL
);

-- Browser-local-storage equivalent (cart, currentUser, custom categories)
CREATE TABLE IF NOT EXISTS local_state (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL                     -- JSON
);
"""
