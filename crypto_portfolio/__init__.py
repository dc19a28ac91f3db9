"""Crypto portfolio valuation engine and price-history service."""

__version__ = "0.1.0"
