"""Pytest configuration and fixtures for meal planner tests."""

import asyncio
from datetime import date, timedelta

import pytest
from sqlmodel import Session, SQLModel

from mealplanner.analysis.whoop import default_analysis
from mealplanner.db import close_db, configure_engine
from mealplanner.models import HealthRecord, LibraryMeal

MEAL_TAGS = {
    "Breakfast": ["Energy", "Complex Carbs"],
    "Lunch": ["High-Protein", "Recovery"],
    "Snack": ["Quick Energy", "Omega-3"],
    "Dinner": ["Anti-Inflammatory", "Better Sleep"],
    "Lunch/Dinner": ["High-Protein", "Omega-3"],
}

PREFIXES = {"Breakfast": "B", "Lunch": "L", "Snack": "S", "Dinner": "D", "Lunch/Dinner": "LD"}


def make_meal(
    meal_type: str,
    number: int,
    tags: list[str] | None = None,
    image: bool = True,
) -> LibraryMeal:
    meal_id = f"{PREFIXES[meal_type]}-{number:04d}"
    return LibraryMeal(
        meal_id=meal_id,
        name=f"{meal_type} dish {number}",
        tagline=f"A tasty {meal_type.lower()}",
        meal_type=meal_type,
        ingredients=[{"item": "oats", "quantity": "1/2 cup"}],
        method=["Mix everything.", "Serve."],
        tags=MEAL_TAGS[meal_type] if tags is None else tags,
        image_url=f"https://images.example.com/{meal_id}.png" if image else None,
    )


def make_pool(per_type: int = 5, types: tuple[str, ...] = ("Breakfast", "Lunch", "Snack", "Dinner")) -> list[LibraryMeal]:
    return [make_meal(t, n) for t in types for n in range(1, per_type + 1)]


def make_records(
    recoveries: list[float | None],
    user_id: str = "user-1",
    start: date = date(2026, 1, 1),
    **metrics: list,
) -> list[HealthRecord]:
    """Daily records from ``start``, oldest first, one per recovery value."""
    records = []
    for i, recovery in enumerate(recoveries):
        values = {name: series[i] for name, series in metrics.items()}
        records.append(
            HealthRecord(
                user_id=user_id,
                date=start + timedelta(days=i),
                recovery_score=recovery,
                **values,
            )
        )
    return records


@pytest.fixture
def meal_pool() -> list[LibraryMeal]:
    """Exactly 20 image-bearing meals, five of each meal type."""
    return make_pool()


@pytest.fixture
def analysis():
    return default_analysis("user-1")


@pytest.fixture
def session():
    """Session bound to a fresh in-memory database."""
    engine = configure_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(autouse=True)
def reset_engine():
    yield
    asyncio.run(close_db())
