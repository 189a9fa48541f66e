"""Tests for the WHOOP analyzer."""

import pytest

from conftest import make_records
from mealplanner.analysis.whoop import (
    NEUTRAL_DEFAULTS,
    analyze,
    classify_trend,
    default_analysis,
    describe_analysis,
    nutritional_recommendations,
    physiological_state,
)
from mealplanner.errors import InsufficientDataError, MealPlannerError
from mealplanner.models import Averages, Trends


def averages(**overrides) -> Averages:
    return Averages(**{**NEUTRAL_DEFAULTS, **overrides})


STABLE = Trends(recovery="stable", sleep="stable", strain="stable")


class TestAnalyze:
    def test_empty_records_raise(self):
        with pytest.raises(InsufficientDataError) as exc_info:
            analyze([])
        assert isinstance(exc_info.value, MealPlannerError)
        assert exc_info.value.component == "analyzer"

    def test_averages_ignore_missing_values(self):
        records = make_records(
            [40, None, 80],
            strain=[10.0, 12.5, None],
            sleep_hours=[6.0, 8.0, 7.0],
            calories_burned=[2000, None, 3000],
        )
        result = analyze(records)

        assert result.averages.recovery == pytest.approx(60)
        assert result.averages.strain == pytest.approx(11.25)
        assert result.averages.sleep == pytest.approx(7.0)
        assert result.averages.calories == pytest.approx(2500)

    def test_averages_lie_within_input_range(self):
        recoveries = [33, 91, 57, 68, 12]
        hrv = [41.0, 88.5, 60.0, None, 52.0]
        result = analyze(make_records(recoveries, hrv=hrv))

        assert min(recoveries) <= result.averages.recovery <= max(recoveries)
        present = [v for v in hrv if v is not None]
        assert min(present) <= result.averages.hrv <= max(present)

    def test_all_missing_metric_uses_neutral_default(self):
        result = analyze(make_records([None, None, None]))
        assert result.averages.model_dump() == NEUTRAL_DEFAULTS

    def test_improving_recovery_scenario(self):
        result = analyze(make_records([40, 42, 45, 48, 70, 75, 80]))
        assert result.trends.recovery == "improving"

    def test_declining_recovery_flags_anti_inflammatory(self):
        result = analyze(make_records([80, 80, 60, 60]))
        assert result.trends.recovery == "declining"
        assert result.nutritional_recommendations.anti_inflammatory is True

    def test_small_change_is_stable(self):
        result = analyze(make_records([70, 71, 72, 71]))
        assert result.trends.recovery == "stable"

    def test_later_half_takes_odd_record(self):
        # earlier [50], later [60, 50]: +10%
        result = analyze(make_records([50, 60, 50]))
        assert result.trends.recovery == "improving"

    def test_strain_and_sleep_trends(self):
        result = analyze(
            make_records(
                [70, 70, 70, 70],
                strain=[10.0, 10.0, 15.0, 15.0],
                sleep_hours=[8.0, 8.0, 6.0, 6.0],
            )
        )
        assert result.trends.strain == "improving"
        assert result.trends.sleep == "declining"

    def test_result_is_independent_of_input_order(self):
        records = make_records(
            [40, 42, 45, 48, 70, 75, 80],
            strain=[8.0, 9.5, 14.0, 11.0, 16.0, 12.0, 10.0],
        )
        forward = analyze(records)
        backward = analyze(list(reversed(records)))
        assert forward.model_dump() == backward.model_dump()

    def test_date_range_and_user(self):
        result = analyze(make_records([60] * 7, user_id="athlete"))
        assert result.user_id == "athlete"
        assert result.data_points == 7
        assert result.date_range.start == "2026-01-01"
        assert result.date_range.end == "2026-01-07"

    def test_custom_trend_threshold(self):
        records = make_records([50, 52])
        assert analyze(records).trends.recovery == "stable"
        assert analyze(records, trend_threshold=0.01).trends.recovery == "improving"


class TestClassifyTrend:
    def test_missing_half_is_stable(self):
        assert classify_trend([], [70.0]) == "stable"
        assert classify_trend([70.0], []) == "stable"

    def test_zero_baseline(self):
        assert classify_trend([0.0], [1.0]) == "improving"
        assert classify_trend([0.0], [0.0]) == "stable"

    def test_exact_threshold_is_stable(self):
        assert classify_trend([100.0], [105.0]) == "stable"
        assert classify_trend([100.0], [95.0]) == "stable"


class TestPhysiologicalState:
    @pytest.mark.parametrize(
        "recovery,fatigue,status",
        [
            (49.9, "high", "poor"),
            (50, "moderate", "fair"),
            (65, "moderate", "good"),
            (74.9, "moderate", "good"),
            (75, "low", "good"),
            (80, "low", "excellent"),
        ],
    )
    def test_recovery_buckets(self, recovery, fatigue, status):
        state = physiological_state(averages(recovery=recovery))
        assert state.fatigue_level == fatigue
        assert state.recovery_status == status

    @pytest.mark.parametrize(
        "strain,demand",
        [(10, "low"), (10.5, "moderate"), (15, "moderate"), (15.1, "high")],
    )
    def test_metabolic_demand(self, strain, demand):
        assert physiological_state(averages(strain=strain)).metabolic_demand == demand

    @pytest.mark.parametrize(
        "sleep,quality",
        [(8, "excellent"), (7.9, "good"), (7, "good"), (6, "fair"), (5.9, "poor")],
    )
    def test_sleep_quality(self, sleep, quality):
        assert physiological_state(averages(sleep=sleep)).sleep_quality == quality


class TestNutritionalRecommendations:
    @pytest.mark.parametrize(
        "strain,recovery,trends,expected",
        [
            (16, 30, STABLE, ("high", "post-workout", True, True, "high")),
            (9, 70, STABLE, ("moderate", "balanced", False, False, "low")),
            (5, 40, STABLE, ("high", "pre-workout", True, True, "high")),
            (16, 85, STABLE, ("high", "post-workout", False, True, "moderate")),
            (
                12,
                70,
                Trends(recovery="declining", sleep="stable", strain="stable"),
                ("moderate", "balanced", True, False, "low"),
            ),
        ],
    )
    def test_rules(self, strain, recovery, trends, expected):
        avg = averages(strain=strain, recovery=recovery)
        recs = nutritional_recommendations(avg, physiological_state(avg), trends)
        assert (
            recs.protein_emphasis,
            recs.carb_timing,
            recs.anti_inflammatory,
            recs.hydration_focus,
            recs.energy_density,
        ) == expected


def test_default_analysis():
    result = default_analysis("newcomer")

    assert result.user_id == "newcomer"
    assert result.data_points == 0
    assert result.date_range.start == "N/A"
    assert result.physiological_state.recovery_status == "good"
    assert result.nutritional_recommendations.carb_timing == "balanced"
    assert result.nutritional_recommendations.anti_inflammatory is False
    assert "No WHOOP data yet" in describe_analysis(result)


def test_describe_analysis_mentions_flags():
    result = analyze(make_records([30, 35, 40], strain=[16.0, 17.0, 15.5]))
    text = describe_analysis(result)
    assert "anti-inflammatory foods" in text
    assert "hydration" in text
    assert "poor" in text
