"""Meal library parsing, formatting and statistics."""
