"""Domain models shared by the analyzer, selector, library and API."""

from datetime import date as Date
from typing import Literal

from pydantic import BaseModel, Field, computed_field, field_validator

from mealplanner.library.formatting import normalize_meal_type

Trend = Literal["improving", "declining", "stable"]
Level = Literal["low", "moderate", "high"]
Grade = Literal["excellent", "good", "fair", "poor"]

DAYS_OF_WEEK = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class HealthRecord(BaseModel):
    """One day of WHOOP metrics for a user. Any metric may be missing."""

    user_id: str
    date: Date

    recovery_score: float | None = Field(default=None, ge=0, le=100)
    strain: float | None = Field(default=None, ge=0)
    sleep_hours: float | None = Field(default=None, ge=0)
    calories_burned: int | None = Field(default=None, ge=0)

    avg_heart_rate: float | None = None
    resting_heart_rate: float | None = None
    hrv: float | None = None
    spo2: float | None = None
    skin_temp: float | None = None
    respiratory_rate: float | None = None


class DateRange(BaseModel):
    start: str
    end: str


class Averages(BaseModel):
    recovery: float
    strain: float
    sleep: float
    hrv: float
    rhr: float
    calories: float
    avg_hr: float
    spo2: float
    skin_temp: float
    respiratory_rate: float


class Trends(BaseModel):
    recovery: Trend
    sleep: Trend
    strain: Trend


class PhysiologicalState(BaseModel):
    fatigue_level: Level
    recovery_status: Grade
    metabolic_demand: Level
    sleep_quality: Grade


class NutritionalRecommendations(BaseModel):
    protein_emphasis: Literal["high", "moderate", "standard"]
    carb_timing: Literal["pre-workout", "post-workout", "balanced"]
    anti_inflammatory: bool
    hydration_focus: bool
    energy_density: Level


class WhoopAnalysis(BaseModel):
    """Reduction of a window of health records. Derived, never persisted."""

    user_id: str
    data_points: int = Field(ge=0)
    date_range: DateRange
    averages: Averages
    trends: Trends
    physiological_state: PhysiologicalState
    nutritional_recommendations: NutritionalRecommendations


class Ingredient(BaseModel):
    item: str
    quantity: str = "as needed"
    optional: bool = False
    notes: str | None = None


class NutritionFacts(BaseModel):
    calories: float = 400
    protein: float = 20
    carbs: float = 40
    fat: float = 15
    fiber: float = 5
    sodium: float = 500


class LibraryMeal(BaseModel):
    """A curated meal available for plan generation."""

    meal_id: str
    name: str
    tagline: str | None = None
    meal_type: str
    serving_size: str | None = "1 serving"
    prep_time: str | None = None
    ingredients: list[Ingredient] = Field(default_factory=list)
    method: list[str] = Field(default_factory=list)
    why_this_meal: str | None = None
    nutrition: NutritionFacts = Field(default_factory=NutritionFacts)
    tags: list[str] = Field(default_factory=list)
    image_url: str | None = None

    @field_validator("meal_type")
    @classmethod
    def _canonical_meal_type(cls, value: str) -> str:
        return normalize_meal_type(value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_image(self) -> bool:
        return bool(self.image_url and self.image_url.strip())

    @computed_field  # type: ignore[prop-decorator]
    @property
    def image_class(self) -> Literal["A", "B"]:
        """A for meals with a generated image, B for meals still missing one."""
        return "A" if self.has_image else "B"


class PlannedMeal(BaseModel):
    day: str
    day_index: int
    meal_type: str
    slot_index: int
    meal: LibraryMeal
    reused: bool = False


class WeeklyMealPlan(BaseModel):
    """Seven days of up to four meal slots, in day then slot order."""

    slots: list[PlannedMeal] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.slots)

    def by_day(self) -> dict[str, dict[str, PlannedMeal]]:
        days: dict[str, dict[str, PlannedMeal]] = {}
        for slot in self.slots:
            days.setdefault(slot.day, {})[slot.meal_type] = slot
        return days

    def meal_ids(self) -> list[str]:
        return [slot.meal.meal_id for slot in self.slots]
