"""Database CRUD operations.

Implements all data-access functions for products, customers, transactions,
transaction items, the transaction number counter, and sales reporting.
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from typing import Any

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _row_to_dict(row: sqlite3.Row | None) -> dict[str, Any] | None:
    """Convert a sqlite3.Row to a plain dict, or return None."""
    if row is None:
        return None
    return dict(row)


def _rows_to_list(rows: list[sqlite3.Row]) -> list[dict[str, Any]]:
    """Convert a list of sqlite3.Row to a list of dicts."""
    return [dict(r) for r in rows]


def _now() -> str:
    """Return the current UTC timestamp as an ISO-8601 string."""
    return datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")


def _like(term: str) -> str:
    """Wrap *term* for a case-insensitive substring LIKE match."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _build_update(
    table: str,
    row_id: int,
    fields: dict[str, Any],
    allowed: set[str],
) -> tuple[str, list[Any]]:
    """Build a dynamic UPDATE statement from validated field names.

    Only columns in *allowed* are accepted; this whitelist check prevents
    SQL injection even though column names are interpolated into the query.

    Returns (sql, params) ready for ``conn.execute()``.
    """
    to_set: dict[str, Any] = {}
    for key, value in fields.items():
        if key in allowed:
            to_set[key] = value
    if not to_set:
        msg = "No valid fields to update"
        raise ValueError(msg)

    clauses = [f"{col} = ?" for col in to_set]
    params = list(to_set.values())
    params.append(row_id)
    sql = f"UPDATE {table} SET {', '.join(clauses)} WHERE id = ?"  # noqa: S608
    return sql, params


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

_PRODUCT_UPDATE_ALLOWED = {
    "sku",
    "barcode",
    "name",
    "category",
    "price",
    "stock",
}


def create_product(
    conn: sqlite3.Connection,
    sku: str,
    name: str,
    price: float,
    category: str = "",
    stock: int = 0,
    barcode: str | None = None,
) -> dict[str, Any] | None:
    """Insert a new product and return it, or None on duplicate SKU/barcode."""
    try:
        cur = conn.execute(
            """
            INSERT INTO products (sku, barcode, name, category, price, stock)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (sku, barcode, name, category, price, stock),
        )
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        return None
    return get_product(conn, cur.lastrowid)


def get_product(conn: sqlite3.Connection, product_id: int) -> dict[str, Any] | None:
    """Return a single product by ID."""
    return _row_to_dict(
        conn.execute("SELECT * FROM products WHERE id = ?", (product_id,)).fetchone()
    )


def get_product_by_sku(conn: sqlite3.Connection, sku: str) -> dict[str, Any] | None:
    """Return a single product by SKU."""
    return _row_to_dict(conn.execute("SELECT * FROM products WHERE sku = ?", (sku,)).fetchone())


def get_product_by_barcode(conn: sqlite3.Connection, barcode: str) -> dict[str, Any] | None:
    """Return a single product by barcode."""
    return _row_to_dict(
        conn.execute("SELECT * FROM products WHERE barcode = ?", (barcode,)).fetchone()
    )


def list_products(
    conn: sqlite3.Connection,
    search: str | None = None,
) -> list[dict[str, Any]]:
    """Return products ordered by name, optionally filtered by a search term.

    The search matches name, SKU or barcode case-insensitively.
    """
    if search:
        pattern = _like(search)
        return _rows_to_list(
            conn.execute(
                """
                SELECT * FROM products
                WHERE name LIKE ? ESCAPE '\\'
                   OR sku LIKE ? ESCAPE '\\'
                   OR barcode LIKE ? ESCAPE '\\'
                ORDER BY name, id
                """,
                (pattern, pattern, pattern),
            ).fetchall()
        )
    return _rows_to_list(conn.execute("SELECT * FROM products ORDER BY name, id").fetchall())


def list_low_stock_products(
    conn: sqlite3.Connection,
    threshold: int,
) -> list[dict[str, Any]]:
    """Return products whose stock is at or below *threshold*."""
    return _rows_to_list(
        conn.execute(
            "SELECT * FROM products WHERE stock <= ? ORDER BY stock, name",
            (threshold,),
        ).fetchall()
    )


def update_product(
    conn: sqlite3.Connection,
    product_id: int,
    **fields: Any,
) -> dict[str, Any] | None:
    """Update a product's fields and return the updated row."""
    fields["updated_at"] = _now()
    allowed = _PRODUCT_UPDATE_ALLOWED | {"updated_at"}
    sql, params = _build_update("products", product_id, fields, allowed)
    try:
        conn.execute(sql, params)
    except sqlite3.IntegrityError:
        conn.rollback()
        raise
    conn.commit()
    return get_product(conn, product_id)


def adjust_stock(
    conn: sqlite3.Connection,
    product_id: int,
    delta: int,
    commit: bool = True,
) -> bool:
    """Add *delta* to a product's stock.

    Returns False (and changes nothing) if the product does not exist or
    the stock would drop below zero.
    """
    cur = conn.execute(
        """
        UPDATE products
        SET stock = stock + ?, updated_at = ?
        WHERE id = ? AND stock + ? >= 0
        """,
        (delta, _now(), product_id, delta),
    )
    if commit:
        conn.commit()
    return cur.rowcount > 0


def delete_product(conn: sqlite3.Connection, product_id: int) -> bool:
    """Delete a product by ID. Returns True if a row was deleted."""
    cur = conn.execute("DELETE FROM products WHERE id = ?", (product_id,))
    conn.commit()
    return cur.rowcount > 0


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------

_CUSTOMER_UPDATE_ALLOWED = {"name", "phone", "email", "address"}


def create_customer(
    conn: sqlite3.Connection,
    name: str,
    phone: str | None = None,
    email: str | None = None,
    address: str | None = None,
) -> dict[str, Any]:
    """Insert a new customer and return it."""
    cur = conn.execute(
        "INSERT INTO customers (name, phone, email, address) VALUES (?, ?, ?, ?)",
        (name, phone, email, address),
    )
    conn.commit()
    row = conn.execute("SELECT * FROM customers WHERE id = ?", (cur.lastrowid,)).fetchone()
    return dict(row)


def get_customer(conn: sqlite3.Connection, customer_id: int) -> dict[str, Any] | None:
    """Return a single customer by ID."""
    return _row_to_dict(
        conn.execute("SELECT * FROM customers WHERE id = ?", (customer_id,)).fetchone()
    )


def list_customers(
    conn: sqlite3.Connection,
    search: str | None = None,
) -> list[dict[str, Any]]:
    """Return customers ordered by name, optionally matching name or phone."""
    if search:
        pattern = _like(search)
        return _rows_to_list(
            conn.execute(
                """
                SELECT * FROM customers
                WHERE name LIKE ? ESCAPE '\\' OR phone LIKE ? ESCAPE '\\'
                ORDER BY name, id
                """,
                (pattern, pattern),
            ).fetchall()
        )
    return _rows_to_list(conn.execute("SELECT * FROM customers ORDER BY name, id").fetchall())


def update_customer(
    conn: sqlite3.Connection,
    customer_id: int,
    **fields: Any,
) -> dict[str, Any] | None:
    """Update a customer's fields and return the updated row."""
    sql, params = _build_update("customers", customer_id, fields, _CUSTOMER_UPDATE_ALLOWED)
    conn.execute(sql, params)
    conn.commit()
    return get_customer(conn, customer_id)


def delete_customer(conn: sqlite3.Connection, customer_id: int) -> bool:
    """Delete a customer by ID. Past transactions keep the customer name."""
    cur = conn.execute("DELETE FROM customers WHERE id = ?", (customer_id,))
    conn.commit()
    return cur.rowcount > 0


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

VALID_TRANSACTION_STATUSES = {"completed", "pending", "cancelled"}


def create_transaction(
    conn: sqlite3.Connection,
    transaction_number: str,
    customer_name: str,
    subtotal: float,
    total: float,
    customer_id: int | None = None,
    discount: float = 0,
    tax: float = 0,
    payment_type: str = "cash",
    currency: str = "TRY",
    status: str = "completed",
    transaction_type: str = "sale",
    commit: bool = True,
) -> dict[str, Any]:
    """Insert a transaction header and return it."""
    cur = conn.execute(
        """
        INSERT INTO transactions
            (transaction_number, customer_id, customer_name, transaction_type,
             subtotal, discount, tax, total, payment_type, currency, status)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            transaction_number,
            customer_id,
            customer_name,
            transaction_type,
            subtotal,
            discount,
            tax,
            total,
            payment_type,
            currency,
            status,
        ),
    )
    if commit:
        conn.commit()
    row = conn.execute("SELECT * FROM transactions WHERE id = ?", (cur.lastrowid,)).fetchone()
    return dict(row)


def create_transaction_items_bulk(
    conn: sqlite3.Connection,
    transaction_id: int,
    items: list[dict[str, Any]],
    commit: bool = True,
) -> list[dict[str, Any]]:
    """Insert multiple transaction line items in one batch and return them."""
    rows_data = [
        (
            transaction_id,
            item.get("product_id"),
            item["product_name"],
            item["quantity"],
            item["price"],
            item["total"],
        )
        for item in items
    ]
    conn.executemany(
        """
        INSERT INTO transaction_items
            (transaction_id, product_id, product_name, quantity, price, total)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        rows_data,
    )
    if commit:
        conn.commit()
    return get_transaction_items(conn, transaction_id)


def get_transaction_items(
    conn: sqlite3.Connection,
    transaction_id: int,
) -> list[dict[str, Any]]:
    """Return all line items for a transaction, ordered by id."""
    return _rows_to_list(
        conn.execute(
            "SELECT * FROM transaction_items WHERE transaction_id = ? ORDER BY id",
            (transaction_id,),
        ).fetchall()
    )


def get_transaction(conn: sqlite3.Connection, transaction_id: int) -> dict[str, Any] | None:
    """Return a single transaction header by ID."""
    return _row_to_dict(
        conn.execute("SELECT * FROM transactions WHERE id = ?", (transaction_id,)).fetchone()
    )


def get_transaction_by_number(
    conn: sqlite3.Connection,
    transaction_number: str,
) -> dict[str, Any] | None:
    """Return a single transaction header by its transaction number."""
    return _row_to_dict(
        conn.execute(
            "SELECT * FROM transactions WHERE transaction_number = ?",
            (transaction_number,),
        ).fetchone()
    )


def get_transaction_with_items(
    conn: sqlite3.Connection,
    transaction_id: int,
) -> dict[str, Any] | None:
    """Return a transaction with its line items nested under an 'items' key."""
    transaction = get_transaction(conn, transaction_id)
    if transaction is None:
        return None
    transaction["items"] = get_transaction_items(conn, transaction_id)
    return transaction


def list_transactions(
    conn: sqlite3.Connection,
    search: str | None = None,
    status: str | None = None,
    limit: int | None = 500,
    offset: int | None = None,
) -> list[dict[str, Any]]:
    """Return transactions newest first, optionally filtered and paginated.

    *search* matches the transaction number or the customer name.
    """
    sql = "SELECT * FROM transactions"
    conditions: list[str] = []
    params: list[Any] = []

    if search:
        pattern = _like(search)
        conditions.append(
            "(transaction_number LIKE ? ESCAPE '\\' OR customer_name LIKE ? ESCAPE '\\')"
        )
        params.extend([pattern, pattern])
    if status is not None:
        conditions.append("status = ?")
        params.append(status)

    if conditions:
        sql += " WHERE " + " AND ".join(conditions)

    sql += " ORDER BY created_at DESC, id DESC"

    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    if offset is not None:
        if limit is None:
            sql += " LIMIT -1"
        sql += " OFFSET ?"
        params.append(offset)

    return _rows_to_list(conn.execute(sql, params).fetchall())


def update_transaction_status(
    conn: sqlite3.Connection,
    transaction_id: int,
    status: str,
    commit: bool = True,
) -> dict[str, Any] | None:
    """Set a transaction's status and return the updated header."""
    if status not in VALID_TRANSACTION_STATUSES:
        msg = f"Invalid transaction status: {status!r}"
        raise ValueError(msg)
    conn.execute(
        "UPDATE transactions SET status = ? WHERE id = ?",
        (status, transaction_id),
    )
    if commit:
        conn.commit()
    return get_transaction(conn, transaction_id)


# ---------------------------------------------------------------------------
# Transaction Counter
# ---------------------------------------------------------------------------


def get_next_transaction_number(conn: sqlite3.Connection) -> int:
    """Peek at the next transaction number without incrementing."""
    row = conn.execute("SELECT next_number FROM transaction_counter WHERE id = 1").fetchone()
    if row is None:
        msg = "transaction_counter table is not initialised"
        raise RuntimeError(msg)
    return int(row["next_number"])


def reserve_transaction_number(conn: sqlite3.Connection) -> int:
    """Reserve the next transaction number and return it.

    Does not commit: call inside a write transaction (BEGIN IMMEDIATE) so
    the read and the increment cannot interleave with another writer.
    """
    number = get_next_transaction_number(conn)
    conn.execute(
        "UPDATE transaction_counter SET next_number = ? WHERE id = 1",
        (number + 1,),
    )
    return number


# ---------------------------------------------------------------------------
# Reporting Queries
# ---------------------------------------------------------------------------


def get_sales_summary(
    conn: sqlite3.Connection,
    low_stock_threshold: int,
) -> dict[str, Any]:
    """Dashboard metrics across all transactions."""
    row = conn.execute(
        """
        SELECT
            SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END)
                                                        AS completed_sales,
            SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END)
                                                        AS pending_sales,
            SUM(CASE WHEN status = 'cancelled' THEN 1 ELSE 0 END)
                                                        AS cancelled_sales,
            COALESCE(ROUND(SUM(CASE WHEN status = 'completed' THEN total END), 2), 0)
                                                        AS total_revenue,
            COALESCE(ROUND(SUM(
                CASE WHEN status = 'completed'
                      AND date(created_at) = date('now')
                     THEN total END), 2), 0)            AS today_revenue,
            COALESCE(ROUND(SUM(
                CASE WHEN status = 'completed' AND payment_type = 'credit'
                     THEN total END), 2), 0)            AS outstanding_credit
        FROM transactions
        """
    ).fetchone()
    summary = dict(row)
    for key in ("completed_sales", "pending_sales", "cancelled_sales"):
        summary[key] = summary[key] or 0

    counts = conn.execute(
        """
        SELECT
            COUNT(*)                                        AS product_count,
            COALESCE(SUM(CASE WHEN stock <= ? THEN 1 ELSE 0 END), 0)
                                                            AS low_stock_count
        FROM products
        """,
        (low_stock_threshold,),
    ).fetchone()
    summary.update(dict(counts))
    summary["customer_count"] = conn.execute("SELECT COUNT(*) FROM customers").fetchone()[0]
    return summary
