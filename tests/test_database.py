"""Schema smoke tests."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from database.connection import get_db, immediate_transaction, init_database

EXPECTED_TABLES = [
    "products",
    "customers",
    "transactions",
    "transaction_items",
    "transaction_counter",
]


def test_all_tables_exist(db: sqlite3.Connection) -> None:
    rows = db.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name").fetchall()
    table_names = {row["name"] for row in rows}
    for table in EXPECTED_TABLES:
        assert table in table_names, f"Missing table: {table}"


def test_transaction_counter_initialised(db: sqlite3.Connection) -> None:
    row = db.execute("SELECT next_number FROM transaction_counter WHERE id = 1").fetchone()
    assert row is not None
    assert row["next_number"] == 1


def test_foreign_key_enforcement(db: sqlite3.Connection) -> None:
    """Inserting an item for a non-existent transaction should fail."""
    with pytest.raises(sqlite3.IntegrityError):
        db.execute(
            """
            INSERT INTO transaction_items
                (transaction_id, product_name, quantity, price, total)
            VALUES (?, ?, ?, ?, ?)
            """,
            (9999, "Ghost", 1, 1.0, 1.0),
        )


def test_sku_unique(db: sqlite3.Connection, sample_product: dict[str, object]) -> None:
    with pytest.raises(sqlite3.IntegrityError):
        db.execute(
            "INSERT INTO products (sku, name, price) VALUES (?, ?, ?)",
            (sample_product["sku"], "Copy", 1.0),
        )


def test_negative_stock_rejected(db: sqlite3.Connection) -> None:
    with pytest.raises(sqlite3.IntegrityError):
        db.execute(
            "INSERT INTO products (sku, name, price, stock) VALUES (?, ?, ?, ?)",
            ("NEG-240307-1000", "Negative", 1.0, -1),
        )


def test_transaction_status_check_constraint(db: sqlite3.Connection) -> None:
    """Only completed/pending/cancelled should be allowed."""
    with pytest.raises(sqlite3.IntegrityError):
        db.execute(
            """
            INSERT INTO transactions (transaction_number, customer_name, status)
            VALUES (?, ?, ?)
            """,
            ("INV-TEST", "Someone", "refunded"),
        )


def test_init_database_is_idempotent(tmp_path: Path) -> None:
    path = str(tmp_path / "nested" / "pos.db")
    init_database(path)
    init_database(path)
    conn = get_db(path)
    try:
        count = conn.execute("SELECT COUNT(*) FROM transaction_counter").fetchone()[0]
    finally:
        conn.close()
    assert count == 1


class TestImmediateTransaction:
    def test_commits_on_success(self, db: sqlite3.Connection) -> None:
        with immediate_transaction(db):
            db.execute("INSERT INTO customers (name) VALUES ('Kept')")
        assert db.execute("SELECT COUNT(*) FROM customers").fetchone()[0] == 1

    def test_rolls_back_on_error(self, db: sqlite3.Connection) -> None:
        with pytest.raises(RuntimeError):
            with immediate_transaction(db):
                db.execute("INSERT INTO customers (name) VALUES ('Lost')")
                raise RuntimeError("boom")
        assert db.execute("SELECT COUNT(*) FROM customers").fetchone()[0] == 0

    def test_restores_isolation_level(self, db: sqlite3.Connection) -> None:
        original = db.isolation_level
        with immediate_transaction(db):
            pass
        assert db.isolation_level == original
