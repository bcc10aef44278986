"""Configuration package for the order placement service."""
from .settings import get_settings, Settings

__all__ = ["Settings", "get_settings"]
