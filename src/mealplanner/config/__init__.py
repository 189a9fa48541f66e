"""Configuration for the meal planner."""

from mealplanner.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
