"""CLI entry point for the point-of-sale backend."""

from __future__ import annotations

import click

from config import configure_logging, settings
from database import init_database


@click.group()
def cli() -> None:
    """Point-of-sale and invoicing backend."""
    configure_logging()


@cli.command()
def init_db() -> None:
    """Initialise the SQLite database (creates tables if missing)."""
    init_database(settings.database_path)
    print(f"Database initialised at {settings.database_path}")


@cli.command()
def web() -> None:
    """Start the Flask API server."""
    from api.app import create_app

    app = create_app()
    app.run(
        host=settings.flask_host,
        port=settings.flask_port,
        debug=settings.flask_debug,
    )


@cli.command()
@click.argument("product_type")
@click.option("--count", default=1, help="Number of SKUs to generate.")
def generate_sku(product_type: str, count: int) -> None:
    """Print generated SKUs for a product type/category."""
    from utils.sku import generate_sku as _generate_sku

    for _ in range(count):
        print(_generate_sku(product_type))


@cli.command()
@click.option("--name", required=True, help="Product name.")
@click.option("--category", default="", help="Category; the SKU prefix is derived from it.")
@click.option("--price", required=True, type=float, help="Unit price.")
@click.option("--stock", default=0, type=int, help="Units in stock.")
@click.option("--barcode", default=None, help="Manufacturer barcode.")
def add_product(name: str, category: str, price: float, stock: int, barcode: str | None) -> None:
    """Add a product with a generated SKU."""
    from api.exceptions import AppError
    from database.connection import get_db
    from services.product_service import create_product

    if price < 0 or stock < 0:
        print("Error: price and stock must not be negative")
        return

    conn = get_db(settings.database_path)
    try:
        product = create_product(
            conn, name=name, price=price, category=category, stock=stock, barcode=barcode,
        )
    except AppError as exc:
        print(f"Error: {exc}")
        return
    finally:
        conn.close()

    print(f"Created {product['name']} with SKU {product['sku']}")


@cli.command()
@click.option("--status", type=click.Choice(["completed", "pending", "cancelled"]), default=None)
@click.option("--search", default=None, help="Match transaction number or customer name.")
@click.option("--limit", default=50, help="Maximum rows to show.")
def sales(status: str | None, search: str | None, limit: int) -> None:
    """List recent sales transactions."""
    from database.connection import get_db
    import database.models as models

    conn = get_db(settings.database_path)
    try:
        transactions = models.list_transactions(conn, search=search, status=status, limit=limit)
    finally:
        conn.close()

    if not transactions:
        label = f" ({status})" if status else ""
        print(f"No transactions found{label}.")
        return

    print(f"{'Number':<14} {'Customer':<28} {'Total':>14} {'Payment':<8} {'Status':<10} {'Date'}")
    print("-" * 96)
    for t in transactions:
        print(
            f"{t['transaction_number']:<14} "
            f"{t['customer_name'][:28]:<28} "
            f"{t['total']:>10,.2f} {t['currency']:<3} "
            f"{t['payment_type']:<8} "
            f"{t['status']:<10} "
            f"{t['created_at']}"
        )
    print(f"\nTotal: {len(transactions)} transaction(s)")


@cli.command()
@click.argument("transaction_number")
def print_invoice(transaction_number: str) -> None:
    """Write the invoice PDF for a transaction number (e.g. INV-000001)."""
    from database.connection import get_db
    import database.models as models
    from services.invoice_printer import save_invoice_pdf

    conn = get_db(settings.database_path)
    try:
        transaction = models.get_transaction_by_number(conn, transaction_number)
        if transaction is None:
            print(f"Error: no transaction found with number '{transaction_number}'")
            return
        transaction = models.get_transaction_with_items(conn, transaction["id"])
    finally:
        conn.close()

    path = save_invoice_pdf(transaction, settings.store_name, settings.invoice_output_dir)
    print(f"Invoice saved to {path}")


@cli.command()
@click.argument("skus", nargs=-1)
def print_labels(skus: tuple[str, ...]) -> None:
    """Generate a barcode label PDF for the given product SKUs."""
    if not skus:
        print("Usage: print-labels SKU [SKU ...]")
        return
    from pathlib import Path

    from services.barcode_generator import create_label_sheet

    output = str(Path(settings.label_output_dir) / "labels.pdf")
    try:
        create_label_sheet(list(skus), output)
    except ValueError as exc:
        print(f"Error: {exc}")
        return
    print(f"Label sheet saved to {output}")


@cli.command()
@click.option("--threshold", default=None, type=int, help="Override LOW_STOCK_THRESHOLD.")
def low_stock(threshold: int | None) -> None:
    """List products at or below the low-stock threshold."""
    from database.connection import get_db
    import database.models as models

    limit = settings.low_stock_threshold if threshold is None else threshold
    conn = get_db(settings.database_path)
    try:
        products = models.list_low_stock_products(conn, limit)
    finally:
        conn.close()

    if not products:
        print(f"No products with stock <= {limit}.")
        return

    print(f"{'SKU':<18} {'Name':<36} {'Stock':>6}")
    print("-" * 62)
    for p in products:
        print(f"{p['sku']:<18} {p['name'][:36]:<36} {p['stock']:>6}")


if __name__ == "__main__":
    cli()
