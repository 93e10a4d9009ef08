"""Barcode label generation.

Generates Code128 barcode images via python-barcode and assembles
printable PDF shelf-label sheets (Avery 5160) and single thermal labels
using reportlab.  Labels encode the product barcode when one is set and
the SKU otherwise, so that either can be scanned back at the till.
"""

from __future__ import annotations

import logging
import sqlite3
from io import BytesIO
from pathlib import Path
from typing import Any

import barcode
from barcode.writer import ImageWriter
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.units import inch
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen.canvas import Canvas

import database.models as models
from config import settings
from database.connection import get_db

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Avery 5160 layout constants
# ---------------------------------------------------------------------------

PAGE_W, PAGE_H = LETTER  # 612 x 792 points
LABEL_W = 2.625 * inch  # 189 points
LABEL_H = 1.0 * inch  # 72 points
MARGIN_TOP = 0.5 * inch  # 36 points
MARGIN_LEFT = 0.1875 * inch  # 13.5 points
GAP_H = 0.125 * inch  # 9 points
GAP_V = 0  # labels touch vertically
COLS = 3
ROWS = 10
LABELS_PER_PAGE = COLS * ROWS


# ---------------------------------------------------------------------------
# Barcode image generation
# ---------------------------------------------------------------------------


def generate_barcode_image(code: str) -> bytes:
    """Generate a Code128 barcode as PNG bytes for the given code."""
    code128 = barcode.get("code128", code, writer=ImageWriter())
    buffer = BytesIO()
    code128.write(buffer, options={
        "module_width": 0.3,
        "module_height": 8.0,
        "text_distance": 3.0,
        "font_size": 8,
        "quiet_zone": 2.0,
    })
    return buffer.getvalue()


def label_code(product: dict[str, Any]) -> str:
    """Return the code encoded on a product's label: barcode, else SKU."""
    return product.get("barcode") or product["sku"]


def _label_text(product: dict[str, Any]) -> str:
    text = product.get("name", "")
    if product.get("price") is not None:
        text += f" - {product['price']:.2f} {settings.default_currency}"
    return text


def _draw_label(
    c: Canvas,
    product: dict[str, Any],
    x: float,
    y: float,
    width: float,
    height: float,
    font_size: int,
) -> None:
    """Draw SKU, barcode and name/price into the box at (*x*, *y*)."""
    centre = x + width / 2
    c.setFont("Helvetica-Bold", font_size)
    c.drawCentredString(centre, y + height - 12, product["sku"])

    img = ImageReader(BytesIO(generate_barcode_image(label_code(product))))
    c.drawImage(
        img,
        x + 5,
        y + 11,
        width=width - 10,
        height=height - 30,
        preserveAspectRatio=True,
        anchor="c",
    )

    c.setFont("Helvetica", font_size - 2)
    c.drawCentredString(centre, y + 3, _label_text(product))


# ---------------------------------------------------------------------------
# Label sheet (Avery 5160)
# ---------------------------------------------------------------------------


def _products_for_skus(conn: sqlite3.Connection, skus: list[str]) -> list[dict[str, Any]]:
    products: list[dict[str, Any]] = []
    missing: list[str] = []
    for sku in skus:
        product = models.get_product_by_sku(conn, sku)
        if product is None:
            missing.append(sku)
        else:
            products.append(product)
    if missing:
        raise ValueError(f"Unknown SKU(s): {', '.join(missing)}")
    return products


def _sheet_position(index: int) -> tuple[float, float]:
    """Bottom-left corner of the *index*-th label on its page."""
    slot = index % LABELS_PER_PAGE
    row, col = divmod(slot, COLS)
    x = MARGIN_LEFT + col * (LABEL_W + GAP_H)
    y = PAGE_H - MARGIN_TOP - (row + 1) * (LABEL_H + GAP_V)
    return x, y


def create_label_sheet(
    skus: list[str],
    output_path: str,
    conn: sqlite3.Connection | None = None,
) -> str:
    """Write an Avery 5160 sheet PDF with one label per SKU and return its path.

    Unknown SKUs raise ValueError before the file is created.  Without
    *conn* a connection to the configured database is opened and closed.
    """
    if conn is None:
        own = get_db(settings.database_path)
        try:
            products = _products_for_skus(own, skus)
        finally:
            own.close()
    else:
        products = _products_for_skus(conn, skus)

    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    c = Canvas(output_path, pagesize=LETTER)
    for idx, product in enumerate(products):
        if idx and idx % LABELS_PER_PAGE == 0:
            c.showPage()
        x, y = _sheet_position(idx)
        _draw_label(c, product, x, y, LABEL_W, LABEL_H, font_size=7)
    c.save()

    logger.info("Label sheet saved to %s (%d labels)", output_path, len(products))
    return output_path


# ---------------------------------------------------------------------------
# Single thermal label
# ---------------------------------------------------------------------------

THERMAL_W = 2 * inch
THERMAL_H = 1 * inch


def create_single_label(product: dict[str, Any]) -> bytes:
    """Create a single thermal-printer label (2" x 1") as PDF bytes."""
    buffer = BytesIO()
    c = Canvas(buffer, pagesize=(THERMAL_W, THERMAL_H))
    _draw_label(c, product, 0, 0, THERMAL_W, THERMAL_H, font_size=8)
    c.save()
    return buffer.getvalue()
