"""Base adapter for wearable sources that produce daily health records."""

from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import Any

import structlog

from mealplanner.models import HealthRecord

logger = structlog.get_logger()


class BaseAdapter(ABC):
    """A wearable data source.

    Subclasses talk to the vendor client (``connect``, ``disconnect``,
    ``health_check``, ``fetch``) and translate its raw payload with
    ``to_records``. Callers normally only need ``fetch_records``.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._connected = False
        self.logger = logger.bind(adapter=name)

    @property
    def is_connected(self) -> bool:
        return self._connected

    @abstractmethod
    async def connect(self) -> bool:
        """Authenticate with the source.

        Returns:
            True if connected, False if the source is not configured or its
            client library is missing.

        Raises:
            AuthenticationError: If configured credentials are rejected.
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Drop the client and any held credentials."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Whether the source currently answers requests."""

    @abstractmethod
    async def fetch(
        self,
        start_date: date,
        end_date: date | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Fetch the raw payload for an inclusive date range.

        Raises:
            FetchError: If not connected or the source request fails.
        """

    @abstractmethod
    def to_records(self, user_id: str, raw: dict[str, Any]) -> list[HealthRecord]:
        """Fold a raw payload from ``fetch`` into one record per day."""

    async def fetch_records(
        self, user_id: str, start_date: date, end_date: date | None = None
    ) -> list[HealthRecord]:
        """Fetch a date range as daily health records, oldest first."""
        raw = await self.fetch(start_date, end_date)
        records = self.to_records(user_id, raw)
        self.logger.info("Built daily records", user_id=user_id, records=len(records))
        return records

    @staticmethod
    def date_window(days: int, end_date: date | None = None) -> tuple[date, date]:
        """Inclusive range covering the last ``days`` days up to ``end_date``."""
        end_date = end_date or date.today()
        return end_date - timedelta(days=max(days, 1) - 1), end_date

    async def __aenter__(self) -> "BaseAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()


class AdapterError(Exception):
    """Base exception for adapter errors."""

    def __init__(self, adapter_name: str, message: str) -> None:
        self.adapter_name = adapter_name
        self.message = message
        super().__init__(f"[{adapter_name}] {message}")


class AuthenticationError(AdapterError):
    """Raised when the source rejects configured credentials."""


class FetchError(AdapterError):
    """Raised when data cannot be fetched or converted."""
