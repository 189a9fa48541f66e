"""Meal library statistics."""

from collections import Counter
from collections.abc import Sequence

from pydantic import BaseModel, Field

from mealplanner.models import LibraryMeal


class LibraryStats(BaseModel):
    total_meals: int
    meals_with_images: int
    meals_by_type: dict[str, int] = Field(default_factory=dict)
    available_tags: list[str] = Field(default_factory=list)
    needs_image: list[str] = Field(default_factory=list)
    ready_for_generation: bool


def library_stats(pool: Sequence[LibraryMeal], min_pool_size: int) -> LibraryStats:
    """Summarise the library and whether it can back plan generation."""
    with_images = sum(1 for m in pool if m.has_image)
    tags: dict[str, None] = {}
    for meal in pool:
        for tag in meal.tags:
            tags.setdefault(tag, None)

    return LibraryStats(
        total_meals=len(pool),
        meals_with_images=with_images,
        meals_by_type=dict(Counter(m.meal_type for m in pool)),
        available_tags=list(tags),
        needs_image=[m.meal_id for m in pool if not m.has_image],
        ready_for_generation=with_images >= min_pool_size,
    )
