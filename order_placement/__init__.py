"""Atomic order placement over a relational order store."""

__version__ = "1.0.0"
