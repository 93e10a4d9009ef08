"""Tests for services.invoice_printer."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from services.invoice_printer import render_invoice_pdf, save_invoice_pdf


def _transaction(item_count: int = 1, **overrides: Any) -> dict[str, Any]:
    items = [
        {
            "product_name": f"Product {i}",
            "quantity": 1,
            "price": 10.0,
            "total": 10.0,
        }
        for i in range(item_count)
    ]
    transaction = {
        "transaction_number": "INV-000001",
        "customer_name": "Walk-in customer",
        "created_at": "2024-03-07 12:00:00",
        "payment_type": "cash",
        "status": "completed",
        "currency": "TRY",
        "subtotal": 10.0 * item_count,
        "discount": 0.0,
        "total": 10.0 * item_count,
        "items": items,
    }
    transaction.update(overrides)
    return transaction


class TestRenderInvoicePdf:
    def test_returns_pdf(self) -> None:
        pdf = render_invoice_pdf(_transaction(), "Test Store")
        assert pdf[:5] == b"%PDF-"

    def test_from_recorded_sale(self, sample_sale: dict[str, Any]) -> None:
        pdf = render_invoice_pdf(sample_sale, "Test Store")
        assert pdf[:5] == b"%PDF-"

    def test_long_invoice_spans_pages(self) -> None:
        short = render_invoice_pdf(_transaction(1), "Test Store")
        long = render_invoice_pdf(_transaction(80), "Test Store")
        assert len(long) > len(short)

    def test_usd_with_discount_and_long_name(self) -> None:
        transaction = _transaction(
            currency="USD",
            discount=2.0,
            total=8.0,
            payment_type="credit",
            status="cancelled",
        )
        transaction["items"][0]["product_name"] = "A very long product name " * 5
        assert render_invoice_pdf(transaction, "Test Store")[:5] == b"%PDF-"


class TestSaveInvoicePdf:
    def test_writes_named_file(self, tmp_path: Path) -> None:
        path = save_invoice_pdf(_transaction(), "Test Store", str(tmp_path / "out"))
        assert path.endswith("INV-000001.pdf")
        assert Path(path).read_bytes()[:5] == b"%PDF-"
