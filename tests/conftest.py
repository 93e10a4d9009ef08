"""Shared test fixtures."""

from __future__ import annotations

import sqlite3
from collections.abc import Generator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from config import settings
from database.connection import apply_schema
from database.models import create_customer, create_product
from services.transaction_service import SaleRequest, create_sale

FIXED_NOW = datetime(2024, 3, 7, 15, 30, tzinfo=UTC)


class _NoCloseConnection:
    """Wrapper around a sqlite3.Connection that ignores .close() calls.

    This keeps code that closes its own connection from closing the shared
    in-memory test fixture.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        object.__setattr__(self, "_conn", conn)

    def close(self) -> None:  # noqa: D102
        pass  # intentionally do nothing

    def __getattr__(self, name: str) -> object:
        return getattr(self._conn, name)

    def __setattr__(self, name: str, value: object) -> None:
        setattr(self._conn, name, value)


def fixed_clock() -> datetime:
    return FIXED_NOW


class SequenceRandInt:
    """Deterministic stand-in for random.randint yielding preset values."""

    def __init__(self, *values: int) -> None:
        self.values = list(values)
        self.calls: list[tuple[int, int]] = []

    def __call__(self, low: int, high: int) -> int:
        self.calls.append((low, high))
        return self.values.pop(0)


@pytest.fixture
def db() -> Generator[sqlite3.Connection, None, None]:
    """In-memory SQLite database with the full schema applied."""
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    apply_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def output_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point label and invoice output at a temporary directory."""
    monkeypatch.setattr(settings, "label_output_dir", str(tmp_path / "labels"))
    monkeypatch.setattr(settings, "invoice_output_dir", str(tmp_path / "invoices"))
    return tmp_path


@pytest.fixture
def app(db: sqlite3.Connection, monkeypatch: pytest.MonkeyPatch, output_dirs: Path):
    """Flask app whose requests all share the in-memory fixture database."""
    from api.app import create_app

    wrapper = _NoCloseConnection(db)
    monkeypatch.setattr("api.routes.get_db", lambda _path: wrapper)
    application = create_app({"TESTING": True})
    return application


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sample_product(db: sqlite3.Connection) -> dict[str, Any]:
    """Insert and return a product with a known SKU and 10 units in stock."""
    product = create_product(
        db,
        sku="ELE-240307-1234",
        name="USB-C Charger",
        price=25.50,
        category="electronics",
        stock=10,
        barcode="8690000000011",
    )
    assert product is not None
    return product


@pytest.fixture
def second_product(db: sqlite3.Connection) -> dict[str, Any]:
    """Insert and return a second product with 3 units in stock."""
    product = create_product(
        db,
        sku="TOY-240307-5678",
        name="Wooden Train",
        price=40.00,
        category="toys",
        stock=3,
    )
    assert product is not None
    return product


@pytest.fixture
def sample_customer(db: sqlite3.Connection) -> dict[str, Any]:
    """Insert and return a customer."""
    return create_customer(
        db,
        name="Ayse Yilmaz",
        phone="+90 555 010 2030",
        email="ayse@example.com",
    )


@pytest.fixture
def sample_sale(
    db: sqlite3.Connection,
    sample_product: dict[str, Any],
    sample_customer: dict[str, Any],
) -> dict[str, Any]:
    """Record a completed sale of 2 chargers with a 1.00 discount."""
    request = SaleRequest.model_validate(
        {
            "transaction": {"customerId": sample_customer["id"], "discount": "1"},
            "items": [{"productId": sample_product["id"], "quantity": 2}],
        }
    )
    return create_sale(db, request)
