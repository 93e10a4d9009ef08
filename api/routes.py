"""API endpoints for the point-of-sale system."""

from __future__ import annotations

import logging
import math
import os
from io import BytesIO
from typing import Any

from flask import Blueprint, g, jsonify, request, send_file

import database.models as models
from api.errors import error_response, handle_errors
from config import settings
from database.connection import get_db
from services import product_service, transaction_service
from services.invoice_printer import render_invoice_pdf
from utils.sku import generate_sku

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api")


# ---------------------------------------------------------------------------
# DB lifecycle
# ---------------------------------------------------------------------------


@api_bp.before_request
def _open_db() -> None:
    """Open a database connection and store it on flask.g."""
    g.db = get_db(settings.database_path)


@api_bp.teardown_request
def _close_db(exc: BaseException | None = None) -> None:
    """Close the per-request database connection."""
    db = g.pop("db", None)
    if db is not None:
        db.close()


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _json_body() -> dict[str, Any] | None:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _check_non_negative(data: dict[str, Any], field: str, cast: type) -> tuple | None:
    """Return an error response if *field* is present but not a valid non-negative number.

    Booleans, NaN and infinity are rejected, as is a fractional value when
    *cast* is int.  On success the normalised value is written back.
    """
    if field not in data:
        return None
    kind = "an integer" if cast is int else "a number"
    raw = data[field]
    if isinstance(raw, bool):
        return error_response(f"{field} must be {kind}", 400)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return error_response(f"{field} must be {kind}", 400)
    if not math.isfinite(value):
        return error_response(f"{field} must be a finite number", 400)
    if cast is int:
        if not value.is_integer():
            return error_response(f"{field} must be {kind}", 400)
        value = int(value)
    if value < 0:
        return error_response(f"{field} must not be negative", 400)
    data[field] = value
    return None


def _with_symbol(transaction: dict[str, Any]) -> dict[str, Any]:
    transaction["currency_symbol"] = transaction_service.currency_symbol(transaction["currency"])
    return transaction


# ===========================================================================
# SKU preview
# ===========================================================================


@api_bp.route("/sku", methods=["GET"])
@handle_errors
def preview_sku() -> tuple:
    """Generate a SKU for a category without creating a product."""
    return jsonify({"sku": generate_sku(request.args.get("type", ""))}), 200


# ===========================================================================
# Product endpoints
# ===========================================================================

_PRODUCT_FIELDS = ("sku", "barcode", "name", "category", "price", "stock")


@api_bp.route("/products", methods=["GET"])
@handle_errors
def list_products() -> tuple:
    """List products, optionally filtered by ?search=."""
    products = models.list_products(g.db, search=request.args.get("search"))
    return jsonify(products), 200


@api_bp.route("/products", methods=["POST"])
@handle_errors
def create_product() -> tuple:
    """Create a new product. SKU is generated from the category unless given."""
    data = _json_body()
    if not data:
        return error_response("Request body must be JSON", 400)

    for field in ("name", "price"):
        if field not in data:
            return error_response(f"Missing required field: {field}", 400)
    if not str(data["name"]).strip():
        return error_response("name must not be blank", 400)

    for field, cast in (("price", float), ("stock", int)):
        err = _check_non_negative(data, field, cast)
        if err is not None:
            return err

    product = product_service.create_product(
        g.db,
        name=str(data["name"]).strip(),
        price=data["price"],
        category=str(data.get("category") or ""),
        stock=data.get("stock", 0),
        barcode=str(data["barcode"]) if data.get("barcode") is not None else None,
        sku=str(data["sku"]).strip() if data.get("sku") else None,
    )
    return jsonify(product), 201


@api_bp.route("/products/barcode/<path:code>", methods=["GET"])
@handle_errors
def get_product_by_barcode(code: str) -> tuple:
    """Look up a scanned barcode (or SKU)."""
    product = product_service.find_by_code(g.db, code)
    if product is None:
        return error_response("Product not found", 404)
    return jsonify(product), 200


@api_bp.route("/products/<int:product_id>", methods=["GET"])
@handle_errors
def get_product(product_id: int) -> tuple:
    """Get a single product."""
    product = models.get_product(g.db, product_id)
    if product is None:
        return error_response("Product not found", 404)
    return jsonify(product), 200


@api_bp.route("/products/<int:product_id>", methods=["PUT"])
@handle_errors
def update_product(product_id: int) -> tuple:
    """Update an existing product. The SKU only changes when given explicitly."""
    data = _json_body()
    if not data:
        return error_response("Request body must be JSON", 400)

    update_fields = {k: data[k] for k in _PRODUCT_FIELDS if k in data}
    if not update_fields:
        return error_response("No valid fields to update", 400)
    if "name" in update_fields and not str(update_fields["name"] or "").strip():
        return error_response("name must not be blank", 400)
    if "sku" in update_fields and not str(update_fields["sku"] or "").strip():
        return error_response("sku must not be blank", 400)
    if "barcode" in update_fields:
        update_fields["barcode"] = str(update_fields["barcode"] or "").strip() or None

    for field, cast in (("price", float), ("stock", int)):
        err = _check_non_negative(update_fields, field, cast)
        if err is not None:
            return err

    if models.get_product(g.db, product_id) is None:
        return error_response("Product not found", 404)

    updated = models.update_product(g.db, product_id, **update_fields)
    return jsonify(updated), 200


@api_bp.route("/products/<int:product_id>", methods=["DELETE"])
@handle_errors
def delete_product(product_id: int) -> tuple:
    """Delete a product. Past sales keep the product name."""
    deleted = models.delete_product(g.db, product_id)
    if not deleted:
        return error_response("Product not found", 404)

    return jsonify({"message": "Product deleted"}), 200


@api_bp.route("/products/<int:product_id>/label", methods=["GET"])
@handle_errors
def product_label(product_id: int):
    """Single thermal label PDF for a product."""
    from services.barcode_generator import create_single_label

    product = models.get_product(g.db, product_id)
    if product is None:
        return error_response("Product not found", 404)

    pdf = create_single_label(product)
    return send_file(
        BytesIO(pdf),
        mimetype="application/pdf",
        download_name=f"{product['sku']}.pdf",
    )


@api_bp.route("/products/labels", methods=["POST"])
@handle_errors
def generate_labels() -> tuple:
    """Generate a barcode label sheet PDF for a list of SKUs."""
    data = _json_body()
    if not data or "skus" not in data:
        return error_response("Request body must include 'skus' list", 400)

    if not isinstance(data["skus"], list) or not data["skus"]:
        return error_response("'skus' must be a non-empty list", 400)

    from services.barcode_generator import create_label_sheet

    output_dir = settings.label_output_dir
    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, "labels.pdf")

    create_label_sheet(data["skus"], output_path, conn=g.db)

    return jsonify({"path": output_path, "count": len(data["skus"])}), 200


# ===========================================================================
# Customer endpoints
# ===========================================================================

_CUSTOMER_FIELDS = ("name", "phone", "email", "address")


@api_bp.route("/customers", methods=["GET"])
@handle_errors
def list_customers() -> tuple:
    """List customers, optionally filtered by ?search= (name or phone)."""
    customers = models.list_customers(g.db, search=request.args.get("search"))
    return jsonify(customers), 200


@api_bp.route("/customers", methods=["POST"])
@handle_errors
def create_customer() -> tuple:
    """Create a customer."""
    data = _json_body()
    if not data:
        return error_response("Request body must be JSON", 400)

    name = str(data.get("name") or "").strip()
    if not name:
        return error_response("Missing required field: name", 400)

    customer = models.create_customer(
        g.db,
        name=name,
        phone=data.get("phone"),
        email=data.get("email"),
        address=data.get("address"),
    )
    return jsonify(customer), 201


@api_bp.route("/customers/<int:customer_id>", methods=["GET"])
@handle_errors
def get_customer(customer_id: int) -> tuple:
    """Get a single customer."""
    customer = models.get_customer(g.db, customer_id)
    if customer is None:
        return error_response("Customer not found", 404)
    return jsonify(customer), 200


@api_bp.route("/customers/<int:customer_id>", methods=["PUT"])
@handle_errors
def update_customer(customer_id: int) -> tuple:
    """Update a customer's contact details."""
    data = _json_body()
    if not data:
        return error_response("Request body must be JSON", 400)

    if "name" in data and not str(data["name"] or "").strip():
        return error_response("name must not be blank", 400)

    update_fields = {k: data[k] for k in _CUSTOMER_FIELDS if k in data}
    if not update_fields:
        return error_response("No valid fields to update", 400)

    if models.get_customer(g.db, customer_id) is None:
        return error_response("Customer not found", 404)

    updated = models.update_customer(g.db, customer_id, **update_fields)
    return jsonify(updated), 200


@api_bp.route("/customers/<int:customer_id>", methods=["DELETE"])
@handle_errors
def delete_customer(customer_id: int) -> tuple:
    """Delete a customer."""
    if not models.delete_customer(g.db, customer_id):
        return error_response("Customer not found", 404)
    return jsonify({"message": "Customer deleted"}), 200


# ===========================================================================
# Transaction endpoints
# ===========================================================================


@api_bp.route("/transactions", methods=["GET"])
@handle_errors
def list_transactions() -> tuple:
    """List transactions newest first with optional ?search= and ?status=."""
    status = request.args.get("status")
    if status is not None and status not in models.VALID_TRANSACTION_STATUSES:
        return error_response(f"Invalid status: {status}", 400)

    transactions = models.list_transactions(
        g.db,
        search=request.args.get("search"),
        status=status,
        limit=request.args.get("limit", default=500, type=int),
        offset=request.args.get("offset", type=int),
    )
    return jsonify([_with_symbol(t) for t in transactions]), 200


@api_bp.route("/transactions", methods=["POST"])
@handle_errors
def create_transaction() -> tuple:
    """Record a sale from {"transaction": {...}, "items": [...]}."""
    data = _json_body()
    if not data:
        return error_response("Request body must be JSON", 400)

    sale = transaction_service.SaleRequest.model_validate(data)
    transaction = transaction_service.create_sale(g.db, sale)
    return jsonify(_with_symbol(transaction)), 201


@api_bp.route("/transactions/<int:transaction_id>", methods=["GET"])
@handle_errors
def get_transaction(transaction_id: int) -> tuple:
    """Get a transaction with its items."""
    transaction = transaction_service.get_transaction(g.db, transaction_id)
    return jsonify(_with_symbol(transaction)), 200


@api_bp.route("/transactions/<int:transaction_id>/cancel", methods=["POST"])
@handle_errors
def cancel_transaction(transaction_id: int) -> tuple:
    """Cancel a sale and restock its items."""
    transaction = transaction_service.cancel_transaction(g.db, transaction_id)
    return jsonify(_with_symbol(transaction)), 200


@api_bp.route("/transactions/<int:transaction_id>/complete", methods=["POST"])
@handle_errors
def complete_transaction(transaction_id: int) -> tuple:
    """Complete a pending sale."""
    transaction = transaction_service.complete_transaction(g.db, transaction_id)
    return jsonify(_with_symbol(transaction)), 200


@api_bp.route("/transactions/<int:transaction_id>/invoice", methods=["GET"])
@handle_errors
def transaction_invoice(transaction_id: int):
    """Printable invoice PDF for a transaction."""
    transaction = transaction_service.get_transaction(g.db, transaction_id)
    pdf = render_invoice_pdf(transaction, settings.store_name)
    return send_file(
        BytesIO(pdf),
        mimetype="application/pdf",
        download_name=f"{transaction['transaction_number']}.pdf",
    )


# ===========================================================================
# Dashboard
# ===========================================================================


@api_bp.route("/dashboard/metrics", methods=["GET"])
@handle_errors
def dashboard_metrics() -> tuple:
    """Sales and inventory summary."""
    return jsonify(transaction_service.sales_summary(g.db)), 200
