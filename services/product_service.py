"""Product creation and barcode lookup.

SKUs are generated from the product category and are only probabilistically
unique, so creation retries generation when the SKU is already taken.
"""

from __future__ import annotations

import logging
import math
import sqlite3
from typing import Any

import database.models as models
from api.exceptions import DuplicateCodeError, SkuExhaustedError, ValidationError
from config import settings
from utils.sku import Clock, RandInt, generate_sku

logger = logging.getLogger(__name__)


def _check_amounts(price: float, stock: int) -> None:
    if isinstance(price, bool) or not math.isfinite(price) or price < 0:
        raise ValidationError(f"price must be a finite non-negative number, got {price!r}")
    if isinstance(stock, bool) or not isinstance(stock, int) or stock < 0:
        raise ValidationError(f"stock must be a non-negative integer, got {stock!r}")


def _insert_failure(
    conn: sqlite3.Connection, sku: str, barcode: str | None
) -> DuplicateCodeError | ValidationError:
    """Explain why an insert returned no row once the SKU is known to be free."""
    if barcode is not None and models.get_product_by_barcode(conn, barcode) is not None:
        return DuplicateCodeError(f"Duplicate barcode: {barcode}")
    return ValidationError(f"Product {sku} could not be saved")


def create_product(
    conn: sqlite3.Connection,
    name: str,
    price: float,
    category: str = "",
    stock: int = 0,
    barcode: str | None = None,
    sku: str | None = None,
    *,
    max_attempts: int | None = None,
    clock: Clock | None = None,
    randint: RandInt | None = None,
) -> dict[str, Any]:
    """Create a product, generating its SKU from *category* when not given.

    An explicit *sku* is inserted as-is.  A generated SKU that collides with
    an existing product is regenerated up to *max_attempts* times.

    Raises ValidationError for a non-finite or negative price or stock,
    DuplicateCodeError on a duplicate barcode or explicit SKU, and
    SkuExhaustedError when every generated SKU collided.
    """
    _check_amounts(price, stock)
    if barcode is not None:
        barcode = barcode.strip() or None
    if barcode is not None and models.get_product_by_barcode(conn, barcode) is not None:
        raise DuplicateCodeError(f"Duplicate barcode: {barcode}")

    if sku is not None:
        product = models.create_product(
            conn, sku=sku, name=name, price=price, category=category,
            stock=stock, barcode=barcode,
        )
        if product is not None:
            return product
        if models.get_product_by_sku(conn, sku) is not None:
            raise DuplicateCodeError(f"Duplicate SKU: {sku}")
        raise _insert_failure(conn, sku, barcode)

    attempts = max_attempts or settings.sku_max_attempts
    for attempt in range(1, attempts + 1):
        candidate = generate_sku(category, clock=clock, randint=randint)
        if models.get_product_by_sku(conn, candidate) is None:
            product = models.create_product(
                conn, sku=candidate, name=name, price=price, category=category,
                stock=stock, barcode=barcode,
            )
            if product is not None:
                logger.info("Created product %s (%s)", candidate, name)
                return product
            # Only a row now holding the SKU makes this a collision
            if models.get_product_by_sku(conn, candidate) is None:
                raise _insert_failure(conn, candidate, barcode)
        logger.warning("SKU collision on %s (attempt %d/%d)", candidate, attempt, attempts)

    raise SkuExhaustedError(f"Could not generate a unique SKU after {attempts} attempts")


def find_by_code(conn: sqlite3.Connection, code: str) -> dict[str, Any] | None:
    """Look up a scanned code, matching barcode first and then SKU."""
    code = code.strip()
    if not code:
        return None
    product = models.get_product_by_barcode(conn, code)
    if product is None:
        product = models.get_product_by_sku(conn, code)
    return product
