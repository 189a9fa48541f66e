"""Health-data analysis."""

from mealplanner.analysis.whoop import (
    NEUTRAL_DEFAULTS,
    TREND_THRESHOLD,
    analyze,
    default_analysis,
    describe_analysis,
)

__all__ = [
    "NEUTRAL_DEFAULTS",
    "TREND_THRESHOLD",
    "analyze",
    "default_analysis",
    "describe_analysis",
]
