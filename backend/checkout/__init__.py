"""Checkout backend: purchase records and order number allocation."""
