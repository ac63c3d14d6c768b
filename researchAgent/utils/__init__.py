"""Utility helpers: error types and logging."""
