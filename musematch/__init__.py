"""Swipe-based discovery and matching for musicians."""

__version__ = "0.1.0"
