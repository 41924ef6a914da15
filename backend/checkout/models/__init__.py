"""Database models."""

from sqlmodel import SQLModel

from checkout.models.enums import PurchaseStatus, PurchaseType
from checkout.models.purchase import ORDER_NUMBER_CONSTRAINT, Purchase

__all__ = [
    "SQLModel",
    "Purchase",
    "PurchaseStatus",
    "PurchaseType",
    "ORDER_NUMBER_CONSTRAINT",
]
