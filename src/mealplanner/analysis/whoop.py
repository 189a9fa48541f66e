"""WHOOP health-data analysis.

Reduces a window of daily ``HealthRecord``s to averages, half-over-half
trends, a physiological state snapshot and nutritional recommendations.
Every rule below is an ordered threshold check, so each covers its whole
input range and the result is a pure function of the records.
"""

from collections.abc import Callable, Sequence

import structlog

from mealplanner.errors import InsufficientDataError
from mealplanner.models import (
    Averages,
    DateRange,
    HealthRecord,
    NutritionalRecommendations,
    PhysiologicalState,
    Trend,
    Trends,
    WhoopAnalysis,
)

logger = structlog.get_logger()

# Relative change between the earlier and later half that leaves "stable"
TREND_THRESHOLD = 0.05

# Used when a metric is missing from every record in the window
NEUTRAL_DEFAULTS = {
    "recovery": 65.0,
    "strain": 12.0,
    "sleep": 7.5,
    "hrv": 45.0,
    "rhr": 65.0,
    "calories": 2200.0,
    "avg_hr": 70.0,
    "spo2": 97.0,
    "skin_temp": 33.5,
    "respiratory_rate": 15.0,
}

_METRICS: dict[str, Callable[[HealthRecord], float | None]] = {
    "recovery": lambda r: r.recovery_score,
    "strain": lambda r: r.strain,
    "sleep": lambda r: r.sleep_hours,
    "hrv": lambda r: r.hrv,
    "rhr": lambda r: r.resting_heart_rate,
    "calories": lambda r: r.calories_burned,
    "avg_hr": lambda r: r.avg_heart_rate,
    "spo2": lambda r: r.spo2,
    "skin_temp": lambda r: r.skin_temp,
    "respiratory_rate": lambda r: r.respiratory_rate,
}


def _values(records: Sequence[HealthRecord], metric: str) -> list[float]:
    getter = _METRICS[metric]
    return [float(v) for v in (getter(r) for r in records) if v is not None]


def _mean(values: list[float]) -> float | None:
    return sum(values) / len(values) if values else None


def classify_trend(
    earlier: list[float], later: list[float], threshold: float = TREND_THRESHOLD
) -> Trend:
    """Classify the change from the earlier to the later half of a window."""
    earlier_avg = _mean(earlier)
    later_avg = _mean(later)
    if earlier_avg is None or later_avg is None:
        return "stable"
    if earlier_avg == 0:
        return "improving" if later_avg > 0 else "stable"

    change = (later_avg - earlier_avg) / earlier_avg
    if change > threshold:
        return "improving"
    if change < -threshold:
        return "declining"
    return "stable"


def physiological_state(averages: Averages) -> PhysiologicalState:
    recovery = averages.recovery
    strain = averages.strain
    sleep = averages.sleep

    if recovery < 50:
        fatigue = "high"
    elif recovery < 75:
        fatigue = "moderate"
    else:
        fatigue = "low"

    if recovery >= 80:
        recovery_status = "excellent"
    elif recovery >= 65:
        recovery_status = "good"
    elif recovery >= 50:
        recovery_status = "fair"
    else:
        recovery_status = "poor"

    if strain > 15:
        demand = "high"
    elif strain > 10:
        demand = "moderate"
    else:
        demand = "low"

    if sleep >= 8:
        sleep_quality = "excellent"
    elif sleep >= 7:
        sleep_quality = "good"
    elif sleep >= 6:
        sleep_quality = "fair"
    else:
        sleep_quality = "poor"

    return PhysiologicalState(
        fatigue_level=fatigue,
        recovery_status=recovery_status,
        metabolic_demand=demand,
        sleep_quality=sleep_quality,
    )


def nutritional_recommendations(
    averages: Averages, state: PhysiologicalState, trends: Trends
) -> NutritionalRecommendations:
    strain = averages.strain

    if strain > 12 or state.recovery_status == "poor":
        protein = "high"
    elif strain > 8:
        protein = "moderate"
    else:
        protein = "standard"

    if strain > 14:
        carb_timing = "post-workout"
    elif strain > 8:
        carb_timing = "balanced"
    else:
        carb_timing = "pre-workout"

    if state.fatigue_level == "high":
        density = "high"
    elif state.metabolic_demand == "high":
        density = "moderate"
    else:
        density = "low"

    return NutritionalRecommendations(
        protein_emphasis=protein,
        carb_timing=carb_timing,
        anti_inflammatory=state.recovery_status == "poor" or trends.recovery == "declining",
        hydration_focus=strain > 12 or state.fatigue_level == "high",
        energy_density=density,
    )


def analyze(
    records: Sequence[HealthRecord], trend_threshold: float = TREND_THRESHOLD
) -> WhoopAnalysis:
    """Analyze a window of daily health records for one user.

    Args:
        records: Daily records, in either date order.
        trend_threshold: Relative change needed to call a trend.

    Returns:
        The derived analysis.

    Raises:
        InsufficientDataError: If ``records`` is empty.
    """
    if not records:
        raise InsufficientDataError()

    ordered = sorted(records, key=lambda r: r.date)

    means: dict[str, float] = {}
    for metric, default in NEUTRAL_DEFAULTS.items():
        avg = _mean(_values(ordered, metric))
        means[metric] = default if avg is None else avg
    averages = Averages(**means)

    # Later half takes the extra record when the count is odd
    mid = len(ordered) // 2
    earlier, later = ordered[:mid], ordered[mid:]
    trends = Trends(
        **{
            metric: classify_trend(
                _values(earlier, metric), _values(later, metric), trend_threshold
            )
            for metric in ("recovery", "sleep", "strain")
        }
    )

    state = physiological_state(averages)
    analysis = WhoopAnalysis(
        user_id=ordered[-1].user_id,
        data_points=len(ordered),
        date_range=DateRange(
            start=ordered[0].date.isoformat(), end=ordered[-1].date.isoformat()
        ),
        averages=averages,
        trends=trends,
        physiological_state=state,
        nutritional_recommendations=nutritional_recommendations(averages, state, trends),
    )

    logger.info(
        "Analyzed WHOOP data",
        user_id=analysis.user_id,
        data_points=analysis.data_points,
        recovery_status=state.recovery_status,
        recovery_trend=trends.recovery,
    )
    return analysis


def default_analysis(user_id: str) -> WhoopAnalysis:
    """Analysis used for users who have no WHOOP data yet."""
    return WhoopAnalysis(
        user_id=user_id,
        data_points=0,
        date_range=DateRange(start="N/A", end="N/A"),
        averages=Averages(**NEUTRAL_DEFAULTS),
        trends=Trends(recovery="stable", sleep="stable", strain="stable"),
        physiological_state=PhysiologicalState(
            fatigue_level="moderate",
            recovery_status="good",
            metabolic_demand="moderate",
            sleep_quality="good",
        ),
        nutritional_recommendations=NutritionalRecommendations(
            protein_emphasis="moderate",
            carb_timing="balanced",
            anti_inflammatory=False,
            hydration_focus=False,
            energy_density="moderate",
        ),
    )


def describe_analysis(analysis: WhoopAnalysis) -> str:
    """One-paragraph, human-readable reading of an analysis."""
    avg = analysis.averages
    state = analysis.physiological_state
    recs = analysis.nutritional_recommendations

    if analysis.data_points == 0:
        parts = ["No WHOOP data yet, so the plan uses balanced defaults."]
    else:
        parts = [
            f"Over {analysis.data_points} days your recovery averaged {avg.recovery:.0f}% "
            f"({state.recovery_status}, {analysis.trends.recovery}), "
            f"strain {avg.strain:.1f} and sleep {avg.sleep:.1f} hours."
        ]
    parts.append(
        f"Fatigue is {state.fatigue_level} and metabolic demand is {state.metabolic_demand}."
    )

    focus = [f"{recs.protein_emphasis} protein", f"{recs.carb_timing} carbs"]
    if recs.anti_inflammatory:
        focus.append("anti-inflammatory foods")
    if recs.hydration_focus:
        focus.append("hydration")
    parts.append("Focus on " + ", ".join(focus) + ".")
    return " ".join(parts)
