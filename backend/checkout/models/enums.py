"""Enum definitions for database models."""

from enum import StrEnum


class PurchaseType(StrEnum):
    """Kind of purchase being recorded."""

    ORIGINAL_ORDER = "original-order"
    RESET_ORDER = "reset-order"
    ACTIVATION_ORDER = "activation-order"


class PurchaseStatus(StrEnum):
    """Payment status of a purchase."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
