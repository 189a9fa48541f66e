"""Health data source adapters."""

from mealplanner.adapters.base import (
    AdapterError,
    AuthenticationError,
    BaseAdapter,
    FetchError,
)
from mealplanner.adapters.whoop import WhoopAdapter, build_daily_records, sync_whoop_data

__all__ = [
    # Base
    "BaseAdapter",
    "AdapterError",
    "AuthenticationError",
    "FetchError",
    # Adapters
    "WhoopAdapter",
    # Convenience functions
    "build_daily_records",
    "sync_whoop_data",
]
