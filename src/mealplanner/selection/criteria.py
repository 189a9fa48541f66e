"""Translate a WHOOP analysis into meal tag preferences."""

from pydantic import BaseModel, Field

from mealplanner.library.formatting import normalize_tag
from mealplanner.models import LibraryMeal, WhoopAnalysis

# (field, value) of the physiological state or recommendations ->
# (preferred tags, avoided tags)
STATE_TAGS: dict[tuple[str, str], tuple[list[str], list[str]]] = {
    ("recovery_status", "poor"): (["Recovery", "Anti-Inflammatory", "Easy Digest"], ["Heavy", "Complex"]),
    ("recovery_status", "excellent"): (["Performance", "Energy", "High-Protein"], []),
    ("fatigue_level", "high"): (["Energy Boost", "Quick Energy", "B-Vitamins"], ["Heavy", "High-Fat"]),
    ("fatigue_level", "low"): (["Sustained Energy", "Complex Carbs"], []),
    ("sleep_quality", "poor"): (["Better Sleep", "Sleep Support", "Magnesium", "Tryptophan"], ["Caffeine", "High-Sugar"]),
    ("metabolic_demand", "high"): (["High-Calorie", "Performance", "Protein-Rich"], []),
    ("metabolic_demand", "low"): (["Light", "Low-Calorie", "Nutrient-Dense"], []),
    ("protein_emphasis", "high"): (["High-Protein", "Muscle Recovery"], []),
    ("carb_timing", "pre-workout"): (["Pre-Workout", "Quick Energy"], []),
    ("carb_timing", "post-workout"): (["Post-Workout", "Recovery"], []),
}

# Boolean recommendation flags -> preferred tags
FLAG_TAGS: dict[str, list[str]] = {
    "anti_inflammatory": ["Anti-Inflammatory", "Omega-3", "Antioxidants"],
    "hydration_focus": ["Hydrating", "Electrolytes"],
}


class SelectionCriteria(BaseModel):
    """Soft tag preferences derived from an analysis."""

    preferred_tags: list[str] = Field(default_factory=list)
    avoided_tags: list[str] = Field(default_factory=list)

    def rank(self, meal: LibraryMeal) -> int:
        """0 for preferred meals, 1 for neutral ones, 2 for meals to avoid."""
        tags = {normalize_tag(t) for t in meal.tags}
        if tags & {normalize_tag(t) for t in self.avoided_tags}:
            return 2
        if tags & {normalize_tag(t) for t in self.preferred_tags}:
            return 0
        return 1


def _extend_unique(target: list[str], tags: list[str]) -> None:
    for tag in tags:
        if tag not in target:
            target.append(tag)


def build_criteria(analysis: WhoopAnalysis) -> SelectionCriteria:
    state = analysis.physiological_state.model_dump()
    recs = analysis.nutritional_recommendations.model_dump()
    observed = {**state, **recs}

    criteria = SelectionCriteria()
    for (field, value), (preferred, avoided) in STATE_TAGS.items():
        if observed.get(field) == value:
            _extend_unique(criteria.preferred_tags, preferred)
            _extend_unique(criteria.avoided_tags, avoided)

    for flag, preferred in FLAG_TAGS.items():
        if recs.get(flag):
            _extend_unique(criteria.preferred_tags, preferred)

    return criteria
