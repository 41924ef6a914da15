"""Purchases API package."""

from checkout.api.v1.purchases.routes import router

__all__ = ["router"]
