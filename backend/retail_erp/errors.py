# Overview: Business-rule and infrastructure error types shared by the services.

from __future__ import annotations

from decimal import Decimal

from .money import money_str


class BusinessRuleError(Exception):
    """Expected business failure; carries details the UI can render."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(BusinessRuleError):
    """Referenced record (rule, customer, payment method, product) is missing."""


class InactiveRuleError(BusinessRuleError):
    """Numbering rule exists but is disabled."""


class NoInventoryRecordError(BusinessRuleError):
    """Product is not stocked (no inventory row)."""
    def __init__(self, product_id: int, product_name: str | None = None):
        label = product_name or f"#{product_id}"
        super().__init__(
            f"No inventory record for product {label}",
            details={"product_id": product_id},
        )
        self.product_id = product_id


class InsufficientStockError(BusinessRuleError):
    def __init__(
        self,
        product_id: int,
        available: int,
        requested: int,
        product_name: str | None = None,
    ):
        label = product_name or f"#{product_id}"
        super().__init__(
            f"Insufficient stock for product {label}, available: {available}",
            details={
                "product_id": product_id,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class InsufficientPaymentError(BusinessRuleError):
    def __init__(self, required: Decimal, received: Decimal):
        super().__init__(
            f"Insufficient payment, required: {money_str(required)}, received: {money_str(received)}",
            details={"required": money_str(required), "received": money_str(received)},
        )
        self.required = required
        self.received = received


class TransactionFailedError(Exception):
    """Unexpected persistence fault (abort, lock/statement timeout, connectivity)."""
