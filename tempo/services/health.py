from datetime import date
from typing import Optional, Protocol

from tempo.core.domain import HealthData
from tempo.core.errors import HealthDataUnavailable


class HealthRecordProvider(Protocol):
    def fetch(self, user_id: str, advice_date: date) -> HealthData:
        ...


class RequestHealthRecordProvider:
    """Serves the measurements the device uploaded with the advice request."""

    def __init__(self, health_data: Optional[HealthData]) -> None:
        self.health_data = health_data

    def fetch(self, user_id: str, advice_date: date) -> HealthData:
        if self.health_data is None:
            raise HealthDataUnavailable(f"No health data supplied for user={user_id} date={advice_date}")
        return self.health_data
