"""Database models for the meal planner using SQLModel."""

from datetime import date as Date
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthMetric(SQLModel, table=True):
    """Stores daily WHOOP metrics. One row per user per day."""

    __tablename__ = "whoop_health_data"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_whoop_user_date"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    date: Date = Field(index=True)
    source: str = "whoop"

    # Recovery
    recovery_score: float | None = None
    hrv: float | None = None
    resting_heart_rate: float | None = None

    # Activity
    strain: float | None = None
    calories_burned: int | None = None
    avg_heart_rate: float | None = None

    # Sleep
    sleep_hours: float | None = None

    # Vitals
    spo2: float | None = None
    skin_temp: float | None = None
    respiratory_rate: float | None = None

    synced_at: datetime = Field(default_factory=_utcnow)


class MealRow(SQLModel, table=True):
    """A meal library entry."""

    __tablename__ = "meals"

    id: int | None = Field(default=None, primary_key=True)
    meal_id: str = Field(index=True, unique=True)  # B-0001, LD-0003, ...
    meal_name: str = Field(index=True)
    tagline: str | None = None
    meal_type: str = Field(index=True)
    serving_size: str | None = None
    prep_time: str | None = None

    ingredients: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    method: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    nutrition: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON))

    why_this_meal: str | None = None
    image_url: str | None = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
