"""Printable sales invoices.

Renders a transaction (with its items) as a single-column A4 PDF using
reportlab.  Long invoices continue onto further pages with the table
header repeated.
"""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Any

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen.canvas import Canvas

logger = logging.getLogger(__name__)

PAGE_W, PAGE_H = A4
MARGIN = 18 * mm
LINE_H = 6 * mm

# Column x positions: product name, quantity, unit price, line total
COL_NAME = MARGIN
COL_QTY = PAGE_W - MARGIN - 95 * mm
COL_PRICE = PAGE_W - MARGIN - 45 * mm
COL_TOTAL = PAGE_W - MARGIN

# Standard PDF fonts have no Turkish lira glyph.
_PDF_CURRENCY = {"USD": "$", "TRY": "TL"}

_STATUS_LABELS = {"completed": "Completed", "pending": "Pending", "cancelled": "CANCELLED"}


def _money(amount: float, currency: str) -> str:
    return f"{amount:,.2f} {_PDF_CURRENCY.get(currency, currency)}"


def _truncate(text: str, limit: int = 48) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _draw_table_header(c: Canvas, y: float) -> float:
    c.setFont("Helvetica-Bold", 9)
    c.drawString(COL_NAME, y, "Item")
    c.drawRightString(COL_QTY, y, "Qty")
    c.drawRightString(COL_PRICE, y, "Price")
    c.drawRightString(COL_TOTAL, y, "Total")
    y -= 2 * mm
    c.line(MARGIN, y, PAGE_W - MARGIN, y)
    c.setFont("Helvetica", 9)
    return y - LINE_H


def render_invoice_pdf(transaction: dict[str, Any], store_name: str) -> bytes:
    """Render *transaction* (with an ``items`` list) as PDF bytes."""
    currency = transaction["currency"]
    buffer = BytesIO()
    c = Canvas(buffer, pagesize=A4)
    c.setTitle(f"Invoice {transaction['transaction_number']}")

    y = PAGE_H - MARGIN
    c.setFont("Helvetica-Bold", 16)
    c.drawString(MARGIN, y, store_name)
    c.setFont("Helvetica-Bold", 12)
    c.drawRightString(PAGE_W - MARGIN, y, f"Invoice {transaction['transaction_number']}")

    y -= 2 * LINE_H
    c.setFont("Helvetica", 10)
    c.drawString(MARGIN, y, f"Customer: {transaction['customer_name']}")
    c.drawRightString(PAGE_W - MARGIN, y, f"Date: {transaction.get('created_at') or '-'}")
    y -= LINE_H
    payment = "Credit" if transaction["payment_type"] == "credit" else "Cash"
    c.drawString(MARGIN, y, f"Payment: {payment}")
    status = _STATUS_LABELS.get(transaction["status"], transaction["status"])
    c.drawRightString(PAGE_W - MARGIN, y, f"Status: {status}")

    y -= 2 * LINE_H
    y = _draw_table_header(c, y)

    for item in transaction.get("items", []):
        if y < MARGIN + 4 * LINE_H:
            c.showPage()
            y = _draw_table_header(c, PAGE_H - MARGIN)
        c.drawString(COL_NAME, y, _truncate(item["product_name"]))
        c.drawRightString(COL_QTY, y, str(item["quantity"]))
        c.drawRightString(COL_PRICE, y, _money(item["price"], currency))
        c.drawRightString(COL_TOTAL, y, _money(item["total"], currency))
        y -= LINE_H

    if y < MARGIN + 4 * LINE_H:
        c.showPage()
        y = PAGE_H - MARGIN

    c.line(COL_QTY - 20 * mm, y + LINE_H / 2, PAGE_W - MARGIN, y + LINE_H / 2)
    y -= LINE_H / 2
    c.drawRightString(COL_PRICE, y, "Subtotal")
    c.drawRightString(COL_TOTAL, y, _money(transaction["subtotal"], currency))
    if transaction.get("discount"):
        y -= LINE_H
        c.drawRightString(COL_PRICE, y, "Discount")
        c.drawRightString(COL_TOTAL, y, "-" + _money(transaction["discount"], currency))
    y -= LINE_H
    c.setFont("Helvetica-Bold", 11)
    c.drawRightString(COL_PRICE, y, "Total")
    c.drawRightString(COL_TOTAL, y, _money(transaction["total"], currency))

    c.save()
    return buffer.getvalue()


def save_invoice_pdf(
    transaction: dict[str, Any],
    store_name: str,
    output_dir: str,
) -> str:
    """Render an invoice into *output_dir* and return the file path."""
    path = Path(output_dir) / f"{transaction['transaction_number']}.pdf"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(render_invoice_pdf(transaction, store_name))
    logger.info("Invoice saved to %s", path)
    return str(path)
