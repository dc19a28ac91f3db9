"""Valuation engine: per-transaction strategies and the batch processor."""
