"""Application configuration loaded from environment variables."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, model_validator

load_dotenv()

_PROJECT_ROOT = Path(__file__).resolve().parent

_DEFAULT_SECRET_KEY = "change-me-in-production"  # noqa: S105

SUPPORTED_CURRENCIES = ("TRY", "USD")

logger = logging.getLogger(__name__)


class Config(BaseModel):
    """Centralised app configuration backed by env vars."""

    # App paths
    database_path: str = str(_PROJECT_ROOT / "data" / "pos.db")
    invoice_output_dir: str = str(_PROJECT_ROOT / "data" / "invoices")
    label_output_dir: str = str(_PROJECT_ROOT / "data" / "labels")

    # Sales
    store_name: str = "Point of Sale"
    transaction_prefix: str = "INV"
    default_currency: str = "TRY"
    walk_in_customer_name: str = "Walk-in customer"
    low_stock_threshold: int = 5

    # Products
    sku_max_attempts: int = 5

    # Flask
    flask_host: str = "127.0.0.1"
    flask_port: int = 5000
    flask_debug: bool = True
    flask_secret_key: str = _DEFAULT_SECRET_KEY
    cors_origins: list[str] = ["http://localhost:5173"]

    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_fields(self) -> Config:
        """Reject unusable values and warn about insecure defaults."""
        if self.default_currency not in SUPPORTED_CURRENCIES:
            msg = f"Unsupported default currency: {self.default_currency!r}"
            raise ValueError(msg)
        if self.sku_max_attempts < 1:
            msg = "sku_max_attempts must be at least 1"
            raise ValueError(msg)
        if not self.flask_debug and self.flask_secret_key == _DEFAULT_SECRET_KEY:
            logger.warning("FLASK_SECRET_KEY is the development default; set it in production")
        return self

    @classmethod
    def from_env(cls) -> Config:
        """Build config from environment variables."""
        cors_raw = os.getenv("CORS_ORIGINS", "http://localhost:5173")
        cors_origins = [o.strip() for o in cors_raw.split(",") if o.strip()]

        return cls(
            database_path=os.getenv("DATABASE_PATH", str(_PROJECT_ROOT / "data" / "pos.db")),
            invoice_output_dir=os.getenv(
                "INVOICE_OUTPUT_DIR", str(_PROJECT_ROOT / "data" / "invoices")
            ),
            label_output_dir=os.getenv("LABEL_OUTPUT_DIR", str(_PROJECT_ROOT / "data" / "labels")),
            store_name=os.getenv("STORE_NAME", "Point of Sale"),
            transaction_prefix=os.getenv("TRANSACTION_PREFIX", "INV"),
            default_currency=os.getenv("DEFAULT_CURRENCY", "TRY").upper(),
            walk_in_customer_name=os.getenv("WALK_IN_CUSTOMER_NAME", "Walk-in customer"),
            low_stock_threshold=int(os.getenv("LOW_STOCK_THRESHOLD", "5")),
            sku_max_attempts=int(os.getenv("SKU_MAX_ATTEMPTS", "5")),
            flask_host=os.getenv("FLASK_HOST", "127.0.0.1"),
            flask_port=int(os.getenv("FLASK_PORT", "5000")),
            flask_debug=os.getenv("FLASK_DEBUG", "true").lower() in ("1", "true", "yes"),
            flask_secret_key=os.getenv("FLASK_SECRET_KEY", _DEFAULT_SECRET_KEY),
            cors_origins=cors_origins,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the CLI and the web app."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


settings = Config.from_env()
