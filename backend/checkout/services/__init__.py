"""Services module.

This module provides the service layer architecture:
- exceptions: Custom service exceptions
- order_numbers: Order number allocation (durable allocator, in-memory counter)
- purchases: Purchase record creation and lookup
"""
