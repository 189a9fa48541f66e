"""Plan generation: stored health data in, weekly meal plan out."""

from dataclasses import dataclass

import structlog
from sqlmodel import Session

from mealplanner.analysis.whoop import analyze, default_analysis
from mealplanner.cache import KeyValueStore
from mealplanner.config.settings import PlannerSettings, settings
from mealplanner.db import fetch_health_records, load_meal_pool
from mealplanner.library.stats import LibraryStats, library_stats
from mealplanner.models import WhoopAnalysis
from mealplanner.selection.service import SelectionOptions, SelectionResult, select_meals

logger = structlog.get_logger()


@dataclass
class GeneratedPlan:
    analysis: WhoopAnalysis
    result: SelectionResult
    library: LibraryStats
    cached: bool = False


def _cache_key(user_id: str, options: SelectionOptions) -> str:
    filters = options.model_dump(
        include={"timestamp", "meal_types", "tags", "exclude_tags", "max_results"}
    )
    return f"{user_id}|{sorted(filters.items())}"


class MealPlanner:
    """Combines stored WHOOP data, the analyzer and the meal library.

    Owns the plan and image caches for the process that creates it.
    """

    def __init__(self, config: PlannerSettings | None = None) -> None:
        self.config = config or settings.planner
        self.plan_cache: KeyValueStore[GeneratedPlan] = KeyValueStore(
            "plans", ttl=self.config.plan_cache_ttl_seconds, maxsize=self.config.cache_max_entries
        )
        self.image_cache: KeyValueStore[str] = KeyValueStore(
            "images", ttl=self.config.image_cache_ttl_seconds, maxsize=self.config.cache_max_entries
        )

    def analysis_for(self, session: Session, user_id: str, days: int | None = None) -> WhoopAnalysis:
        """Analyze the user's recent records, or fall back to the default analysis."""
        records = fetch_health_records(session, user_id, days or self.config.analysis_days)
        if not records:
            logger.warning("No WHOOP data found, using default analysis", user_id=user_id)
            return default_analysis(user_id)
        return analyze(records, trend_threshold=self.config.trend_threshold)

    def library_status(self, session: Session) -> LibraryStats:
        return library_stats(load_meal_pool(session), self.config.min_pool_size)

    def generate(
        self,
        session: Session,
        user_id: str,
        options: SelectionOptions | None = None,
        days: int | None = None,
    ) -> GeneratedPlan:
        """Return the user's plan, drawing a new one when asked to or when none is cached.

        Raises:
            InsufficientPoolError: If the library has too few meals with images.
            NoMatchingMealsError: If the option filters leave nothing.
        """
        options = options or SelectionOptions(max_results=self.config.max_results)
        key = _cache_key(user_id, options)

        if options.wants_new_draw:
            self.plan_cache.evict(key)
        else:
            cached = self.plan_cache.get(key)
            if cached is not None:
                logger.info("Serving cached meal plan", user_id=user_id)
                return GeneratedPlan(cached.analysis, cached.result, cached.library, cached=True)

        analysis = self.analysis_for(session, user_id, days)
        pool = load_meal_pool(session)
        stats = library_stats(pool, self.config.min_pool_size)
        result = select_meals(analysis, pool, options, min_pool_size=self.config.min_pool_size)

        plan = GeneratedPlan(analysis=analysis, result=result, library=stats)
        self.plan_cache.insert(key, plan)
        return plan

    def evict_stale(self) -> int:
        """Drop expired plans and cached image URLs."""
        return self.plan_cache.expire() + self.image_cache.expire()
