"""Sales transactions.

Validates incoming sales, computes totals, allocates transaction numbers,
and keeps product stock in step with completed and cancelled sales.  Every
write runs inside a single BEGIN IMMEDIATE transaction, so a failed sale
leaves neither a header, nor items, nor stock changes behind.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

import database.models as models
from api.exceptions import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from config import settings
from database.connection import immediate_transaction

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {"USD": "$", "TRY": "₺"}


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SaleItemIn(BaseModel):
    """A line of a sale as submitted by the invoice form."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(alias="productId")
    product_name: str | None = Field(default=None, alias="productName")
    quantity: int = Field(default=1, ge=1)
    price: float | None = Field(default=None, ge=0, allow_inf_nan=False)


class SaleIn(BaseModel):
    """Transaction header fields of a new sale."""

    model_config = ConfigDict(populate_by_name=True)

    customer_id: int | None = Field(default=None, alias="customerId")
    customer_name: str | None = Field(default=None, alias="customerName")
    discount: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    tax: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    payment_type: Literal["cash", "credit"] = Field(default="cash", alias="paymentType")
    currency: Literal["TRY", "USD"] | None = None
    status: Literal["completed", "pending"] = "completed"
    transaction_type: Literal["sale"] = Field(default="sale", alias="transactionType")


class SaleRequest(BaseModel):
    """Body of POST /api/transactions."""

    transaction: SaleIn = Field(default_factory=SaleIn)
    items: list[SaleItemIn] = Field(min_length=1)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def format_transaction_number(prefix: str, number: int) -> str:
    """Format a transaction number as PREFIX-NNNNNN."""
    return f"{prefix}-{number:06d}"


def currency_symbol(currency: str) -> str:
    """Return the display symbol for a currency code."""
    return CURRENCY_SYMBOLS.get(currency, currency)


def merge_items(items: list[SaleItemIn]) -> list[SaleItemIn]:
    """Collapse repeated lines for the same product, summing quantities.

    The first line's name and price win; order of first appearance is kept.
    """
    merged: dict[int, SaleItemIn] = {}
    for item in items:
        existing = merged.get(item.product_id)
        if existing is None:
            merged[item.product_id] = item.model_copy()
        else:
            existing.quantity += item.quantity
    return list(merged.values())


def calculate_totals(
    lines: list[dict[str, Any]],
    discount: float,
) -> dict[str, float]:
    """Return subtotal, discount and total for priced lines.

    Each line's total is quantity * price rounded to cents; the sale total is
    the subtotal minus the discount.
    """
    subtotal = round(sum(line["total"] for line in lines), 2)
    discount = round(discount, 2)
    return {"subtotal": subtotal, "discount": discount, "total": round(subtotal - discount, 2)}


def _resolve_customer_name(conn: sqlite3.Connection, sale: SaleIn) -> str:
    if sale.customer_id is not None:
        customer = models.get_customer(conn, sale.customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")
        return customer["name"]
    if sale.customer_name and sale.customer_name.strip():
        return sale.customer_name.strip()
    return settings.walk_in_customer_name


def _price_lines(conn: sqlite3.Connection, items: list[SaleItemIn]) -> list[dict[str, Any]]:
    lines: list[dict[str, Any]] = []
    for item in items:
        product = models.get_product(conn, item.product_id)
        if product is None:
            raise NotFoundError(
                f"Product not found: {item.product_id}",
                details={"product_id": item.product_id},
            )
        price = item.price if item.price is not None else product["price"]
        lines.append(
            {
                "product_id": product["id"],
                "product_name": item.product_name or product["name"],
                "quantity": item.quantity,
                "price": round(price, 2),
                "total": round(item.quantity * price, 2),
            }
        )
    return lines


def _take_stock(conn: sqlite3.Connection, lines: list[dict[str, Any]]) -> None:
    for line in lines:
        if line["product_id"] is None:
            continue
        if not models.adjust_stock(conn, line["product_id"], -line["quantity"], commit=False):
            product = models.get_product(conn, line["product_id"])
            available = product["stock"] if product else 0
            raise InsufficientStockError(
                f"Insufficient stock for {line['product_name']}",
                details={
                    "product_id": line["product_id"],
                    "requested": line["quantity"],
                    "available": available,
                },
            )


def _return_stock(conn: sqlite3.Connection, lines: list[dict[str, Any]]) -> None:
    for line in lines:
        if line["product_id"] is not None:
            models.adjust_stock(conn, line["product_id"], line["quantity"], commit=False)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def create_sale(conn: sqlite3.Connection, request: SaleRequest) -> dict[str, Any]:
    """Record a sale and return it with its items.

    Raises NotFoundError for unknown products or customers,
    ValidationError when the total is not positive, and
    InsufficientStockError when a completed sale exceeds available stock.
    """
    sale = request.transaction
    items = merge_items(request.items)

    with immediate_transaction(conn):
        customer_name = _resolve_customer_name(conn, sale)
        lines = _price_lines(conn, items)
        totals = calculate_totals(lines, sale.discount)
        if totals["total"] <= 0:
            raise ValidationError(
                "Total must be greater than zero",
                details=totals,
            )

        if sale.status == "completed":
            _take_stock(conn, lines)

        number = format_transaction_number(
            settings.transaction_prefix, models.reserve_transaction_number(conn)
        )
        transaction = models.create_transaction(
            conn,
            transaction_number=number,
            customer_id=sale.customer_id,
            customer_name=customer_name,
            subtotal=totals["subtotal"],
            discount=totals["discount"],
            tax=round(sale.tax, 2),
            total=totals["total"],
            payment_type=sale.payment_type,
            currency=sale.currency or settings.default_currency,
            status=sale.status,
            transaction_type=sale.transaction_type,
            commit=False,
        )
        models.create_transaction_items_bulk(conn, transaction["id"], lines, commit=False)

    logger.info(
        "Recorded %s sale %s for %s: %.2f %s",
        sale.status, number, customer_name, totals["total"], transaction["currency"],
    )
    return models.get_transaction_with_items(conn, transaction["id"])


def get_transaction(conn: sqlite3.Connection, transaction_id: int) -> dict[str, Any]:
    """Return a transaction with items, or raise NotFoundError."""
    transaction = models.get_transaction_with_items(conn, transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction not found")
    return transaction


def cancel_transaction(conn: sqlite3.Connection, transaction_id: int) -> dict[str, Any]:
    """Cancel a completed or pending sale, restocking a completed one.

    The status is read under the write lock, so concurrent cancels on
    separate connections restock at most once.
    """
    with immediate_transaction(conn):
        transaction = get_transaction(conn, transaction_id)
        if transaction["status"] == "cancelled":
            raise ValidationError("Transaction is already cancelled")
        if transaction["status"] == "completed":
            _return_stock(conn, transaction["items"])
        models.update_transaction_status(conn, transaction_id, "cancelled", commit=False)

    logger.info("Cancelled transaction %s", transaction["transaction_number"])
    return get_transaction(conn, transaction_id)


def complete_transaction(conn: sqlite3.Connection, transaction_id: int) -> dict[str, Any]:
    """Complete a pending sale, taking its items out of stock."""
    with immediate_transaction(conn):
        transaction = get_transaction(conn, transaction_id)
        if transaction["status"] != "pending":
            raise ValidationError("Can only complete pending transactions")
        _take_stock(conn, transaction["items"])
        models.update_transaction_status(conn, transaction_id, "completed", commit=False)

    logger.info("Completed transaction %s", transaction["transaction_number"])
    return get_transaction(conn, transaction_id)


def sales_summary(conn: sqlite3.Connection) -> dict[str, Any]:
    """Dashboard metrics for the sales overview."""
    return models.get_sales_summary(conn, settings.low_stock_threshold)
