"""Persistence for health records and the meal library."""

from mealplanner.db.repository import (
    fetch_health_records,
    load_meal_pool,
    set_meal_image,
    upsert_health_records,
    upsert_meals,
)
from mealplanner.db.session import close_db, configure_engine, get_engine, get_session, init_db

__all__ = [
    "close_db",
    "configure_engine",
    "fetch_health_records",
    "get_engine",
    "get_session",
    "init_db",
    "load_meal_pool",
    "set_meal_image",
    "upsert_health_records",
    "upsert_meals",
]
