"""WHOOP-driven meal planning from a curated meal library."""

__version__ = "0.1.0"
