# Overview: Business-rule error taxonomy shared by every inventory service.

"""
Expected business-rule violations.

Services raise these inside their transaction scope (so every write of the
failed call is rolled back) and hand them to the caller wrapped in a
Failure. Storage faults (SQLAlchemyError and friends) are not part of this
hierarchy and propagate unchanged.

Each error carries a stable `code` that API clients can branch on.
"""

from __future__ import annotations


class BusinessRuleError(Exception):
    """Base class for expected, user-facing failures."""
    code = "BUSINESS_RULE"
    default_message = "Operation not allowed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class InsufficientStockError(BusinessRuleError):
    """A strict stock delta would drive on-hand quantity below zero."""
    code = "INSUFFICIENT_STOCK"
    default_message = "Stock cannot go below 0"


class NotFoundError(BusinessRuleError):
    code = "NOT_FOUND"
    default_message = "Not found"


class ItemNotFoundError(NotFoundError):
    code = "ITEM_NOT_FOUND"
    default_message = "Inventory item not found"


class InvalidTransitionError(BusinessRuleError):
    """Requested purchase order status is not reachable from the current one."""
    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Cannot transition from {from_status} to {to_status}")


class PermissionDeniedError(BusinessRuleError):
    code = "PERMISSION_DENIED"
    default_message = "Insufficient permissions"


class NotReceivableError(BusinessRuleError):
    code = "NOT_RECEIVABLE"
    default_message = "Order is not in a receivable status"


class OverReceiptError(BusinessRuleError):
    """Cumulative received quantity would exceed quantity ordered (REJECT policy)."""
    code = "OVER_RECEIPT"
    default_message = "Received quantity exceeds quantity ordered"


class OrderNotEditableError(BusinessRuleError):
    code = "ORDER_NOT_EDITABLE"
    default_message = "Only draft orders can be deleted"


class InvalidInputError(BusinessRuleError):
    code = "INVALID_INPUT"
    default_message = "Invalid input"
