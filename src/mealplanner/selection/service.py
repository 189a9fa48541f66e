"""Select a weekly meal plan from the meal library based on WHOOP analysis."""

import random
import time
from collections.abc import Mapping, Sequence
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mealplanner.analysis.whoop import describe_analysis
from mealplanner.config.settings import settings
from mealplanner.errors import InsufficientPoolError, InvalidAnalysisError, NoMatchingMealsError
from mealplanner.library.formatting import (
    BREAKFAST,
    DINNER,
    LUNCH,
    LUNCH_DINNER,
    MEAL_TYPES,
    SNACK,
    normalize_meal_type,
    normalize_tag,
)
from mealplanner.models import DAYS_OF_WEEK, LibraryMeal, PlannedMeal, WeeklyMealPlan, WhoopAnalysis
from mealplanner.selection.criteria import SelectionCriteria, build_criteria

logger = structlog.get_logger()

SLOT_TYPES = (BREAKFAST, LUNCH, SNACK, DINNER)

# Meal types each slot accepts, most specific first
SLOT_ACCEPTS = {
    BREAKFAST: (BREAKFAST,),
    LUNCH: (LUNCH, LUNCH_DINNER),
    SNACK: (SNACK,),
    DINNER: (DINNER, LUNCH_DINNER),
}


class SelectionOptions(BaseModel):
    """Caller options for a selection run. Accepts camelCase request keys."""

    model_config = ConfigDict(populate_by_name=True)

    regenerate: bool = False
    force_new_selection: bool = Field(default=False, alias="forceNewSelection")
    timestamp: int | None = None
    meal_types: list[str] | None = Field(default=None, alias="mealTypes")
    tags: list[str] | None = None
    exclude_tags: list[str] | None = Field(default=None, alias="excludeTags")
    max_results: int = Field(default=28, ge=1, alias="maxResults")

    @field_validator("meal_types")
    @classmethod
    def _canonical_meal_types(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return [normalize_meal_type(v) for v in value]

    @property
    def wants_new_draw(self) -> bool:
        return self.regenerate or self.force_new_selection


class ImageClassValidation(BaseModel):
    """Counts of planned meals with (class A) and without (class B) images."""

    total_slots: int
    class_a: int
    class_b: int
    missing_images: list[dict[str, str]] = Field(default_factory=list)
    valid: bool


class SelectionResult(BaseModel):
    meals: WeeklyMealPlan
    selected: list[LibraryMeal]
    criteria: SelectionCriteria
    whoop_insights: str
    selection_summary: str
    image_class_validation: ImageClassValidation
    seed: str
    unfilled_slots: list[str] = Field(default_factory=list)


def coerce_analysis(analysis: Any) -> WhoopAnalysis:
    """Accept an analysis model or its dict form, rejecting anything else."""
    if isinstance(analysis, WhoopAnalysis):
        return analysis
    if isinstance(analysis, Mapping):
        try:
            return WhoopAnalysis.model_validate(analysis)
        except ValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            raise InvalidAnalysisError(
                f"Malformed WHOOP analysis, invalid fields: {', '.join(fields)}"
            ) from e
    raise InvalidAnalysisError(f"Expected a WHOOP analysis, got {type(analysis).__name__}")


def filter_pool(meals: Sequence[LibraryMeal], options: SelectionOptions) -> list[LibraryMeal]:
    """Apply the caller's hard filters and drop duplicate meal ids."""
    required = {normalize_tag(t) for t in options.tags or []}
    excluded = {normalize_tag(t) for t in options.exclude_tags or []}
    allowed_types = set(options.meal_types) if options.meal_types else None

    kept: dict[str, LibraryMeal] = {}
    for meal in sorted(meals, key=lambda m: m.meal_id):
        if meal.meal_id in kept:
            continue
        tags = {normalize_tag(t) for t in meal.tags}
        if allowed_types is not None and meal.meal_type not in allowed_types:
            continue
        if required and not tags & required:
            continue
        if tags & excluded:
            continue
        kept[meal.meal_id] = meal
    return list(kept.values())


def resolve_seed(analysis: WhoopAnalysis, options: SelectionOptions) -> int | str:
    """Seed for the pool ordering.

    An explicit timestamp always wins. A regenerate request without one draws
    from the clock. Otherwise the seed is the plan version of the analysis,
    so refreshing the same week yields the same plan.
    """
    if options.timestamp is not None:
        return options.timestamp
    if options.wants_new_draw:
        return time.time_ns() // 1_000_000
    return f"{analysis.user_id}:{analysis.date_range.end}"


def order_pool(
    meals: Sequence[LibraryMeal], criteria: SelectionCriteria, seed: int | str
) -> list[LibraryMeal]:
    """Shuffle reproducibly, then move preferred meals forward and avoided ones back."""
    ordered = sorted(meals, key=lambda m: m.meal_id)
    random.Random(seed).shuffle(ordered)
    # sort is stable, so the shuffle survives within each rank
    ordered.sort(key=criteria.rank)
    return ordered


def diversify(ordered: Sequence[LibraryMeal], max_results: int) -> list[LibraryMeal]:
    """Spread up to ``max_results`` meals evenly across the meal types present."""
    groups: dict[str, list[LibraryMeal]] = {}
    for meal_type in MEAL_TYPES:
        members = [m for m in ordered if m.meal_type == meal_type]
        if members:
            groups[meal_type] = members
    if not groups:
        return []

    per_type = max(1, max_results // len(groups))
    selected: list[LibraryMeal] = []
    for members in groups.values():
        for meal in members[:per_type]:
            if len(selected) >= max_results:
                break
            selected.append(meal)

    chosen = {m.meal_id for m in selected}
    for meal in ordered:
        if len(selected) >= max_results:
            break
        if meal.meal_id not in chosen:
            selected.append(meal)
            chosen.add(meal.meal_id)
    return selected


def _build_lane(slot_type: str, selected: Sequence[LibraryMeal]) -> list[LibraryMeal]:
    return [m for t in SLOT_ACCEPTS[slot_type] for m in selected if m.meal_type == t]


def assign_slots(
    selected: Sequence[LibraryMeal],
    slot_types: Sequence[str] = SLOT_TYPES,
) -> tuple[WeeklyMealPlan, list[str]]:
    """Walk days and slots in fixed order, filling each from its lane.

    A lane holds the diversified meals the slot can take, specific type
    first. Once every lane member has been used, the slot reuses
    ``lane[(day_index * slot_count + slot_index) % len(lane)]`` so a given
    plan version always repeats the same meal in the same slot.
    """
    lanes = {slot_type: _build_lane(slot_type, selected) for slot_type in slot_types}
    slot_count = len(slot_types)
    used: set[str] = set()
    plan = WeeklyMealPlan()
    unfilled: list[str] = []

    for day_index, day in enumerate(DAYS_OF_WEEK):
        for slot_index, slot_type in enumerate(slot_types):
            lane = lanes[slot_type]
            if not lane:
                unfilled.append(f"{day} {slot_type}")
                continue

            meal = next((m for m in lane if m.meal_id not in used), None)
            reused = meal is None
            if meal is None:
                meal = lane[(day_index * slot_count + slot_index) % len(lane)]

            used.add(meal.meal_id)
            plan.slots.append(
                PlannedMeal(
                    day=day,
                    day_index=day_index,
                    meal_type=slot_type,
                    slot_index=slot_index,
                    meal=meal,
                    reused=reused,
                )
            )

    if unfilled:
        logger.warning("No meals available for slots", slots=unfilled)
    return plan, unfilled


def validate_image_classes(plan: WeeklyMealPlan) -> ImageClassValidation:
    missing = [
        {"day": s.day, "meal_type": s.meal_type, "meal_id": s.meal.meal_id}
        for s in plan.slots
        if not s.meal.has_image
    ]
    if missing:
        logger.error("Planned meals are missing images", missing=missing)
    return ImageClassValidation(
        total_slots=len(plan.slots),
        class_a=len(plan.slots) - len(missing),
        class_b=len(missing),
        missing_images=missing,
        valid=not missing,
    )


def _slot_types_for(options: SelectionOptions) -> tuple[str, ...]:
    if not options.meal_types:
        return SLOT_TYPES
    allowed = set(options.meal_types)
    return tuple(s for s in SLOT_TYPES if allowed.intersection(SLOT_ACCEPTS[s]))


def _summarize(
    plan: WeeklyMealPlan,
    eligible_count: int,
    criteria: SelectionCriteria,
    options: SelectionOptions,
) -> str:
    unique = len(set(plan.meal_ids()))
    parts = [
        f"Selected {unique} unique meals for {len(plan)} slots from "
        f"{eligible_count} library meals with images."
    ]
    if criteria.preferred_tags:
        parts.append(
            f"Favoured {', '.join(criteria.preferred_tags[:3])} to support your current "
            "physiological state."
        )
    if criteria.avoided_tags:
        parts.append(f"Moved {', '.join(criteria.avoided_tags[:3])} meals to the back.")
    if options.tags:
        parts.append(f"Required tags: {', '.join(options.tags)}.")
    if options.exclude_tags:
        parts.append(f"Excluded tags: {', '.join(options.exclude_tags)}.")
    reused = sum(1 for s in plan.slots if s.reused)
    if reused:
        parts.append(f"{reused} slots repeat a meal because the library ran short.")
    return " ".join(parts)


def _insights(analysis: WhoopAnalysis, criteria: SelectionCriteria) -> str:
    state = analysis.physiological_state
    text = (
        f"Your {state.recovery_status} recovery ({analysis.averages.recovery:.0f}%) and "
        f"{state.fatigue_level} fatigue levels guided our meal selection."
    )
    if criteria.preferred_tags:
        text += f" We prioritized {' and '.join(criteria.preferred_tags[:2])} meals."
    else:
        text += " We kept the plan balanced across meal types."
    return f"{text} {describe_analysis(analysis)}"


def select_meals(
    analysis: WhoopAnalysis | Mapping[str, Any],
    pool: Sequence[LibraryMeal],
    options: SelectionOptions | None = None,
    *,
    min_pool_size: int | None = None,
) -> SelectionResult:
    """Select a diversified weekly meal plan from the library pool.

    Args:
        analysis: WHOOP analysis, or its dict form.
        pool: Library meals; only those with images are eligible.
        options: Selection options. Defaults to a plain, cache-friendly draw.
        min_pool_size: Minimum image-bearing meals required. Defaults to the
            configured planner minimum.

    Returns:
        The plan with insights, summary and image-class validation.

    Raises:
        InvalidAnalysisError: If ``analysis`` is malformed.
        InsufficientPoolError: If too few meals have images.
        NoMatchingMealsError: If the caller's filters leave nothing.
    """
    analysis = coerce_analysis(analysis)
    options = options or SelectionOptions()
    required = settings.planner.min_pool_size if min_pool_size is None else min_pool_size

    eligible = [m for m in pool if m.has_image]
    if len(eligible) < required:
        logger.warning(
            "Insufficient meals in library", available=len(eligible), required=required
        )
        raise InsufficientPoolError(len(eligible), required)

    filtered = filter_pool(eligible, options)
    if not filtered:
        raise NoMatchingMealsError()

    criteria = build_criteria(analysis)
    seed = resolve_seed(analysis, options)
    ordered = order_pool(filtered, criteria, seed)
    selected = diversify(ordered, options.max_results)
    plan, unfilled = assign_slots(selected, _slot_types_for(options))
    validation = validate_image_classes(plan)

    logger.info(
        "Selected meals from library",
        user_id=analysis.user_id,
        eligible=len(eligible),
        filtered=len(filtered),
        selected=len(selected),
        slots=len(plan),
        regenerate=options.wants_new_draw,
    )

    return SelectionResult(
        meals=plan,
        selected=selected,
        criteria=criteria,
        whoop_insights=_insights(analysis, criteria),
        selection_summary=_summarize(plan, len(eligible), criteria, options),
        image_class_validation=validation,
        seed=str(seed),
        unfilled_slots=unfilled,
    )
