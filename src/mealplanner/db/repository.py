"""Read and write health records and library meals."""

from collections.abc import Iterable

import structlog
from pydantic import ValidationError
from sqlmodel import Session, select

from mealplanner.db.models import HealthMetric, MealRow, _utcnow
from mealplanner.models import HealthRecord, LibraryMeal

logger = structlog.get_logger()


def upsert_health_records(session: Session, records: Iterable[HealthRecord]) -> int:
    """Store records, replacing any earlier sync for the same (user, date)."""
    count = 0
    for record in records:
        row = session.exec(
            select(HealthMetric).where(
                HealthMetric.user_id == record.user_id,
                HealthMetric.date == record.date,
            )
        ).first()
        data = record.model_dump()
        if row is None:
            row = HealthMetric(**data)
        else:
            for key, value in data.items():
                setattr(row, key, value)
            row.synced_at = _utcnow()
        session.add(row)
        count += 1

    session.commit()
    logger.info("Stored health records", count=count)
    return count


def fetch_health_records(session: Session, user_id: str, days: int = 7) -> list[HealthRecord]:
    """Most recent ``days`` records for a user, oldest first."""
    rows = session.exec(
        select(HealthMetric)
        .where(HealthMetric.user_id == user_id)
        .order_by(HealthMetric.date.desc())
        .limit(days)
    ).all()
    return [HealthRecord.model_validate(row.model_dump()) for row in reversed(rows)]


def _meal_to_row_data(meal: LibraryMeal) -> dict:
    data = meal.model_dump(exclude={"has_image", "image_class", "name"})
    data["meal_name"] = meal.name
    return data


def _row_to_meal(row: MealRow) -> LibraryMeal:
    data = row.model_dump(exclude={"id", "created_at", "updated_at", "meal_name"})
    data["name"] = row.meal_name
    return LibraryMeal.model_validate(data)


def upsert_meals(session: Session, meals: Iterable[LibraryMeal]) -> int:
    """Insert meals, updating existing rows that share a meal id."""
    count = 0
    for meal in meals:
        row = session.exec(select(MealRow).where(MealRow.meal_id == meal.meal_id)).first()
        data = _meal_to_row_data(meal)
        if row is None:
            row = MealRow(**data)
        else:
            for key, value in data.items():
                setattr(row, key, value)
            row.updated_at = _utcnow()
        session.add(row)
        count += 1

    session.commit()
    logger.info("Stored library meals", count=count)
    return count


def load_meal_pool(session: Session) -> list[LibraryMeal]:
    """Load every library meal. Rows that no longer validate are skipped."""
    pool = []
    for row in session.exec(select(MealRow).order_by(MealRow.meal_id)).all():
        try:
            pool.append(_row_to_meal(row))
        except ValidationError as e:
            logger.warning("Skipping invalid library meal", meal_id=row.meal_id, error=str(e))
    return pool


def set_meal_image(session: Session, meal_id: str, image_url: str) -> bool:
    """Attach a generated image URL to a meal. Returns False if the meal is unknown."""
    row = session.exec(select(MealRow).where(MealRow.meal_id == meal_id)).first()
    if row is None:
        return False
    row.image_url = image_url
    row.updated_at = _utcnow()
    session.add(row)
    session.commit()
    return True
