"""Domain errors raised by the services and translated to HTTP by api.errors."""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base point-of-sale error carrying an HTTP status and optional details."""

    status_code: int = 500

    def __init__(self, message: str = "Internal server error", details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class NotFoundError(AppError):
    status_code = 404


class ValidationError(AppError):
    status_code = 400


class ConflictError(AppError):
    status_code = 409


class DuplicateCodeError(ConflictError):
    """A barcode or explicit SKU is already assigned to another product."""


class SkuExhaustedError(ConflictError):
    """Every generated SKU candidate collided with an existing product."""


class InsufficientStockError(ConflictError):
    """A sale asks for more units than a product has in stock."""
