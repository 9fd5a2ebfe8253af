"""Storefront checkout core: orders, stock reservations and Swish payments."""

__version__ = "0.1.0"
