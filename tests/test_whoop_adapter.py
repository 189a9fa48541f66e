"""Tests for the WHOOP adapter using fake whoopy client objects."""

import asyncio
from datetime import date, datetime
from types import SimpleNamespace

import pytest

from mealplanner.adapters import whoop
from mealplanner.adapters.base import FetchError
from mealplanner.adapters.whoop import MS_PER_HOUR, WhoopAdapter, build_daily_records, sync_whoop_data
from mealplanner.db import fetch_health_records


class FakeCollection:
    def __init__(self, items=None, error: Exception | None = None) -> None:
        self.items = items or []
        self.error = error
        self.calls = []

    def get_all(self, start, end):
        self.calls.append((start, end))
        if self.error:
            raise self.error
        return self.items


def make_cycle(start, strain=14.2, kilojoule=8368.0):
    return SimpleNamespace(
        start=start,
        score=SimpleNamespace(strain=strain, average_heart_rate=72, kilojoule=kilojoule),
    )


def make_sleep(end, hours=(3, 2, 2), nap=False):
    light, deep, rem = hours
    stages = SimpleNamespace(
        total_light_sleep_time_milli=light * MS_PER_HOUR,
        total_slow_wave_sleep_time_milli=deep * MS_PER_HOUR,
        total_rem_sleep_time_milli=rem * MS_PER_HOUR,
    )
    return SimpleNamespace(
        end=end, nap=nap, score=SimpleNamespace(stage_summary=stages, respiratory_rate=15.5)
    )


def make_recovery(created_at, recovery_score=66):
    return SimpleNamespace(
        created_at=created_at,
        score=SimpleNamespace(
            recovery_score=recovery_score,
            resting_heart_rate=52,
            hrv_rmssd_milli=61.2,
            spo2_percentage=96.5,
            skin_temp_celsius=33.1,
        ),
    )


def make_client(recovery_error: Exception | None = None, cycles_error: Exception | None = None):
    return SimpleNamespace(
        cycles=FakeCollection([make_cycle(datetime(2026, 1, 5, 6, 0))], error=cycles_error),
        sleep=FakeCollection([make_sleep("2026-01-05T07:30:00Z")]),
        recovery=FakeCollection(
            [make_recovery(datetime(2026, 1, 5, 8, 0))], error=recovery_error
        ),
        user=SimpleNamespace(get_profile=lambda: {"user_id": 1}),
    )


class TestBuildDailyRecords:
    def test_folds_objects_into_days(self):
        records = build_daily_records(
            "user-1",
            cycles=[
                make_cycle(datetime(2026, 1, 5, 6, 0)),
                make_cycle("2026-01-04T05:00:00Z", strain=8.0, kilojoule=None),
                SimpleNamespace(start=datetime(2026, 1, 3, 6, 0), score=None),
            ],
            sleeps=[
                make_sleep("2026-01-05T07:30:00Z"),
                make_sleep("2026-01-05T15:00:00Z", hours=(1, 0, 0), nap=True),
            ],
            recoveries=[make_recovery(datetime(2026, 1, 5, 8, 0))],
        )

        assert [r.date for r in records] == [date(2026, 1, 4), date(2026, 1, 5)]

        sparse, full = records
        assert sparse.strain == 8.0
        assert sparse.calories_burned is None
        assert sparse.recovery_score is None

        assert full.user_id == "user-1"
        assert full.strain == 14.2
        assert full.calories_burned == 2000
        assert full.sleep_hours == pytest.approx(7.0)
        assert full.respiratory_rate == 15.5
        assert full.recovery_score == 66
        assert full.hrv == 61.2
        assert full.resting_heart_rate == 52

    def test_out_of_range_values_raise(self):
        with pytest.raises(FetchError):
            build_daily_records(
                "user-1",
                cycles=[],
                sleeps=[],
                recoveries=[make_recovery(datetime(2026, 1, 5), recovery_score=150)],
            )


class TestWhoopAdapter:
    def test_injected_client_is_connected(self):
        adapter = WhoopAdapter(client=make_client())

        assert adapter.is_connected
        assert asyncio.run(adapter.connect()) is True
        assert asyncio.run(adapter.health_check()) is True

    def test_fetch_requires_connection(self):
        with pytest.raises(FetchError):
            asyncio.run(WhoopAdapter().fetch(date(2026, 1, 5)))

    def test_fetch_records(self):
        client = make_client()
        adapter = WhoopAdapter(client=client)

        records = asyncio.run(adapter.fetch_records("user-1", date(2026, 1, 5)))

        assert len(records) == 1
        assert records[0].recovery_score == 66
        start, end = client.cycles.calls[0]
        assert start == datetime(2026, 1, 5, 0, 0)
        assert end.date() == date(2026, 1, 5)

    def test_missing_recovery_scope_is_tolerated(self):
        adapter = WhoopAdapter(client=make_client(recovery_error=RuntimeError("scope")))

        raw = asyncio.run(adapter.fetch(date(2026, 1, 5)))

        assert raw["recoveries"] == []
        assert len(raw["cycles"]) == 1

    def test_fetch_failure_is_wrapped(self):
        adapter = WhoopAdapter(client=make_client(cycles_error=RuntimeError("boom")))

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(adapter.fetch(date(2026, 1, 5)))
        assert exc_info.value.adapter_name == "whoop"

    def test_date_window(self):
        assert WhoopAdapter.date_window(3, date(2026, 1, 5)) == (date(2026, 1, 3), date(2026, 1, 5))
        assert WhoopAdapter.date_window(0, date(2026, 1, 5)) == (date(2026, 1, 5), date(2026, 1, 5))

    def test_disconnect(self):
        adapter = WhoopAdapter(client=make_client())
        asyncio.run(adapter.disconnect())

        assert not adapter.is_connected
        assert asyncio.run(adapter.health_check()) is False


class TestSync:
    def test_stores_fetched_records(self, session, monkeypatch):
        monkeypatch.setattr(whoop, "WhoopAdapter", lambda: WhoopAdapter(client=make_client()))

        assert asyncio.run(sync_whoop_data("user-1", days=3)) == 1
        records = fetch_health_records(session, "user-1")
        assert [r.date for r in records] == [date(2026, 1, 5)]

    def test_not_connected_stores_nothing(self, session, monkeypatch):
        monkeypatch.setattr(whoop, "WHOOP_AVAILABLE", False)

        assert asyncio.run(sync_whoop_data("user-1")) == 0
