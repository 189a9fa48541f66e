"""Whoop adapter that turns cycles, sleeps and recoveries into daily health records."""

import json
from collections.abc import Iterable
from datetime import date, datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from mealplanner.adapters.base import AuthenticationError, BaseAdapter, FetchError
from mealplanner.config.settings import settings
from mealplanner.models import HealthRecord

# Whoop API is accessed via whoopy library when available
try:
    from whoopy import WhoopClient

    WHOOP_AVAILABLE = True
except ImportError:
    WHOOP_AVAILABLE = False
    WhoopClient = None  # type: ignore

KJ_PER_KCAL = 4.184
MS_PER_HOUR = 3_600_000


def _token_file() -> Path:
    return Path(settings.whoop.token_file).expanduser()


def _day_of(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def _score(item: Any, field: str) -> Any:
    score = getattr(item, "score", None)
    return getattr(score, field, None) if score is not None else None


class WhoopAdapter(BaseAdapter):
    """Adapter for Whoop recovery, strain and sleep data.

    Each WHOOP object is attributed to a calendar day: cycles by their
    start, sleeps by the morning they end, recoveries by when they were
    scored. Values for the same day are folded into one ``HealthRecord``.

    Tokens are persisted to the configured token file after a successful
    connection.
    """

    def __init__(self, client: Any = None) -> None:
        super().__init__("whoop")
        self._client: Any = client
        self._connected = client is not None

    def _load_saved_tokens(self) -> dict[str, str] | None:
        path = _token_file()
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            self.logger.warning("Ignoring unreadable Whoop token file", error=str(e))
            return None
        if data.get("access_token") and data.get("refresh_token"):
            return data
        return None

    async def connect(self) -> bool:
        """Connect to Whoop API using OAuth tokens."""
        if self._client is not None:
            self._connected = True
            return True
        if not WHOOP_AVAILABLE:
            self.logger.warning("whoopy library not installed. Run: pip install '.[whoop]'")
            return False

        saved = self._load_saved_tokens()
        if saved:
            access_token = saved["access_token"]
            refresh_token = saved["refresh_token"]
            self.logger.info("Using saved Whoop tokens")
        else:
            access_token = settings.whoop.access_token.get_secret_value()
            refresh_token = settings.whoop.refresh_token.get_secret_value()

        if not access_token:
            self.logger.warning("Whoop tokens not configured. Run: mealplanner whoop-auth")
            return False

        try:
            self._client = WhoopClient.from_token(
                access_token=access_token,
                refresh_token=refresh_token,
                client_id=settings.whoop.client_id,
                client_secret=settings.whoop.client_secret.get_secret_value(),
            )
            token_file = _token_file()
            token_file.parent.mkdir(parents=True, exist_ok=True)
            self._client.save_token(str(token_file))
        except Exception as e:
            self.logger.error("Failed to connect to Whoop", error=str(e))
            raise AuthenticationError(self.name, f"Authentication failed: {e}") from e

        self._connected = True
        self.logger.info("Connected to Whoop API")
        return True

    async def disconnect(self) -> None:
        self._client = None
        self._connected = False
        self.logger.info("Disconnected from Whoop API")

    async def health_check(self) -> bool:
        if not self._client:
            return False
        try:
            self._client.user.get_profile()
            return True
        except Exception as e:
            self.logger.warning("Whoop health check failed", error=str(e))
            return False

    async def fetch(
        self,
        start_date: date,
        end_date: date | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Fetch raw cycles, sleeps and recoveries for a date range.

        Recovery needs an extra OAuth scope; when it is missing the
        recoveries list is empty rather than failing the whole fetch.
        """
        if not self._client:
            raise FetchError(self.name, "Not connected")

        end_date = end_date or start_date
        start_dt = datetime.combine(start_date, datetime.min.time())
        end_dt = datetime.combine(end_date, datetime.max.time())

        try:
            cycles = self._client.cycles.get_all(start=start_dt, end=end_dt) or []
            sleeps = self._client.sleep.get_all(start=start_dt, end=end_dt) or []
        except Exception as e:
            self.logger.error("Failed to fetch Whoop data", error=str(e))
            raise FetchError(self.name, f"Fetch failed: {e}") from e

        try:
            recoveries = self._client.recovery.get_all(start=start_dt, end=end_dt) or []
        except Exception as e:
            self.logger.warning("Recovery data unavailable", error=str(e))
            recoveries = []

        self.logger.info(
            "Fetched Whoop data",
            start=start_date.isoformat(),
            end=end_date.isoformat(),
            cycles=len(cycles),
            sleeps=len(sleeps),
            recoveries=len(recoveries),
        )
        return {
            "start": start_date.isoformat(),
            "end": end_date.isoformat(),
            "source": "whoop",
            "cycles": list(cycles),
            "sleeps": list(sleeps),
            "recoveries": list(recoveries),
        }

    def to_records(self, user_id: str, raw: dict[str, Any]) -> list[HealthRecord]:
        return build_daily_records(user_id, raw["cycles"], raw["sleeps"], raw["recoveries"])


def build_daily_records(
    user_id: str,
    cycles: Iterable[Any],
    sleeps: Iterable[Any],
    recoveries: Iterable[Any],
) -> list[HealthRecord]:
    """Fold WHOOP cycle, sleep and recovery objects into daily records."""
    days: dict[date, dict[str, Any]] = {}

    for cycle in cycles:
        day = _day_of(getattr(cycle, "start", None))
        if day is None or getattr(cycle, "score", None) is None:
            continue
        fields = days.setdefault(day, {})
        fields["strain"] = _score(cycle, "strain")
        fields["avg_heart_rate"] = _score(cycle, "average_heart_rate")
        kilojoule = _score(cycle, "kilojoule")
        if kilojoule is not None:
            fields["calories_burned"] = round(kilojoule / KJ_PER_KCAL)

    for sleep in sleeps:
        # Naps would double count the night's sleep
        if getattr(sleep, "nap", False):
            continue
        day = _day_of(getattr(sleep, "end", None))
        stages = _score(sleep, "stage_summary")
        if day is None or stages is None:
            continue
        asleep_ms = sum(
            getattr(stages, name, 0) or 0
            for name in (
                "total_light_sleep_time_milli",
                "total_slow_wave_sleep_time_milli",
                "total_rem_sleep_time_milli",
            )
        )
        fields = days.setdefault(day, {})
        fields["sleep_hours"] = asleep_ms / MS_PER_HOUR if asleep_ms else None
        fields["respiratory_rate"] = _score(sleep, "respiratory_rate")

    for recovery in recoveries:
        day = _day_of(getattr(recovery, "created_at", None))
        if day is None or getattr(recovery, "score", None) is None:
            continue
        fields = days.setdefault(day, {})
        fields["recovery_score"] = _score(recovery, "recovery_score")
        fields["resting_heart_rate"] = _score(recovery, "resting_heart_rate")
        fields["hrv"] = _score(recovery, "hrv_rmssd_milli")
        fields["spo2"] = _score(recovery, "spo2_percentage")
        fields["skin_temp"] = _score(recovery, "skin_temp_celsius")

    records = []
    for day in sorted(days):
        try:
            records.append(HealthRecord(user_id=user_id, date=day, **days[day]))
        except ValidationError as e:
            raise FetchError("whoop", f"Invalid WHOOP values for {day.isoformat()}: {e}") from e
    return records


async def sync_whoop_data(user_id: str, days: int = 7) -> int:
    """Pull the last ``days`` of WHOOP data and store it. Returns records stored."""
    from sqlmodel import Session

    from mealplanner.db import get_engine, upsert_health_records

    async with WhoopAdapter() as adapter:
        if not adapter.is_connected:
            return 0
        records = await adapter.fetch_records(user_id, *adapter.date_window(days))

    with Session(get_engine()) as session:
        return upsert_health_records(session, records)
