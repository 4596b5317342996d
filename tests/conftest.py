import json
import threading
import time
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient

from tempo.core.cache_store import AdviceCacheStore, MemoryKeyValueBackend
from tempo.core.domain import (
    AirQualitySnapshot,
    EnvironmentSnapshot,
    HealthData,
    Location,
    PressureTrend,
    UserProfile,
    WeatherSnapshot,
)
from tempo.core.errors import EnvironmentUnavailable, ProviderConnectionError, ProviderError
from tempo.core.prompt_builder import LayeredPrompt
from tempo.db.session import SessionLocal, configure_database, create_tables
from tempo.services.llm import RawModelOutput

TEST_CREDENTIAL = "sk-ant-test-7f3c9a21b4"


class FakeScenario(str, Enum):
    OK = "OK"
    OK_FENCED = "OK_FENCED"
    NOT_JSON = "NOT_JSON"
    MISSING_FIELDS = "MISSING_FIELDS"
    NO_TEXT = "NO_TEXT"
    TIMEOUT = "TIMEOUT"
    PROVIDER_500 = "PROVIDER_500"


class FakeAdviceClient:
    def __init__(self, scenario: FakeScenario, fixture_dir: Path, delay: float = 0.0) -> None:
        self.scenario = scenario
        self.fixture_dir = fixture_dir
        self.delay = delay
        self.calls: list[LayeredPrompt] = []
        self._lock = threading.Lock()

    def _text(self, name: str) -> str:
        return (self.fixture_dir / name).read_text(encoding="utf-8")

    @staticmethod
    def _output(text: str) -> RawModelOutput:
        return RawModelOutput(content=[{"type": "text", "text": text}], model="fake-model", stop_reason="end_turn")

    def generate(self, prompt: LayeredPrompt, credential: Optional[str]) -> RawModelOutput:
        with self._lock:
            self.calls.append(prompt)
        if self.delay:
            time.sleep(self.delay)
        if self.scenario == FakeScenario.TIMEOUT:
            raise ProviderConnectionError("simulated timeout")
        if self.scenario == FakeScenario.PROVIDER_500:
            raise ProviderError("simulated provider failure", status_code=500)
        if self.scenario == FakeScenario.NOT_JSON:
            return self._output(self._text("NOT_JSON.txt"))
        if self.scenario == FakeScenario.NO_TEXT:
            return RawModelOutput(
                content=[{"type": "tool_use", "id": "tool_1", "name": "noop", "input": {}}], model="fake-model"
            )
        if self.scenario == FakeScenario.MISSING_FIELDS:
            return self._output(self._text("MISSING_FIELDS.json"))
        # Supplementary prompts carry no examples layer.
        if prompt.examples is None:
            return self._output(self._text("OK_SUPPLEMENTARY.json"))
        text = self._text("OK_ADVICE.json")
        if self.scenario == FakeScenario.OK_FENCED:
            text = f"```json\n{text}\n```"
        return self._output(text)


class FakeEnvironmentGateway:
    def __init__(
        self,
        snapshot: Optional[EnvironmentSnapshot] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ) -> None:
        self.snapshot = snapshot or default_environment()
        self.error = error
        self.delay = delay
        self.calls: list[tuple[float, float]] = []

    def fetch(self, latitude: float, longitude: float) -> EnvironmentSnapshot:
        self.calls.append((latitude, longitude))
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.snapshot


def default_environment() -> EnvironmentSnapshot:
    return EnvironmentSnapshot(
        current=WeatherSnapshot(
            temperature_c=22.0,
            humidity_percent=55.0,
            pressure_hpa=1013.0,
            uv_index=2.0,
            condition_code=1,
            temp_max_c=25.0,
            temp_min_c=17.0,
            precipitation_probability=10.0,
        ),
        air_quality=AirQualitySnapshot(aqi=40, pm25=8.0, pm10=15.0),
        pressure_trend=PressureTrend.stable,
    )


def utc(year: int, month: int, day: int, hour: int = 7, minute: int = 30) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def fixture_dir() -> Path:
    return Path(__file__).resolve().parent / "fixtures" / "llm"


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    db_path = tmp_path_factory.mktemp("db") / "tempo_test.db"
    configure_database(str(db_path))
    create_tables()
    return db_path


@pytest.fixture(scope="session")
def app(test_db_path: Path):
    from tempo.main import app as fastapi_app

    return fastapi_app


@pytest.fixture
def client(app):
    app.dependency_overrides = {}
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides = {}


@pytest.fixture
def db_session(test_db_path: Path):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def memory_backend() -> MemoryKeyValueBackend:
    return MemoryKeyValueBackend()


@pytest.fixture
def store(memory_backend: MemoryKeyValueBackend) -> AdviceCacheStore:
    return AdviceCacheStore(memory_backend)


@pytest.fixture
def profile() -> UserProfile:
    return UserProfile(
        nickname="Ken",
        age=34,
        gender="male",
        weight_kg=68.0,
        height_cm=172.0,
        occupation="it_engineer",
        interests=["fitness", "sleep"],
    )


@pytest.fixture
def health_data() -> HealthData:
    return HealthData.model_validate(
        {
            "date": date(2024, 6, 10),
            "sleep": {"bedtime": "23:40", "wakeTime": "06:55", "durationHours": 7.2, "deepSleepHours": 1.4},
            "morningVitals": {"restingHeartRate": 56, "hrvMs": 72.0},
            "yesterdayActivity": {"steps": 9800},
        }
    )


@pytest.fixture
def location() -> Location:
    return Location(latitude=35.6762, longitude=139.6503, city="Tokyo")


@pytest.fixture
def fake_client_factory(fixture_dir: Path) -> Callable[..., FakeAdviceClient]:
    def _factory(scenario: FakeScenario, delay: float = 0.0) -> FakeAdviceClient:
        return FakeAdviceClient(scenario=scenario, fixture_dir=fixture_dir, delay=delay)

    return _factory


@pytest.fixture
def override_advice_client(app, fake_client_factory):
    from tempo.services.llm import get_advice_client

    def _override(scenario: FakeScenario) -> FakeAdviceClient:
        fake = fake_client_factory(scenario)
        app.dependency_overrides[get_advice_client] = lambda: fake
        return fake

    return _override


@pytest.fixture
def override_environment(app):
    from tempo.services.environment import get_environment_gateway

    def _override(gateway: Optional[FakeEnvironmentGateway] = None) -> FakeEnvironmentGateway:
        fake = gateway or FakeEnvironmentGateway()
        app.dependency_overrides[get_environment_gateway] = lambda: fake
        return fake

    return _override


@pytest.fixture
def override_credential(app):
    from tempo.api.advice import get_credential

    def _override(credential: Optional[str] = TEST_CREDENTIAL) -> None:
        app.dependency_overrides[get_credential] = lambda: credential

    return _override


@pytest.fixture
def unavailable_environment() -> FakeEnvironmentGateway:
    return FakeEnvironmentGateway(error=EnvironmentUnavailable("Weather API failed with status 503", status_code=503))
