from collections.abc import Generator
from datetime import date

import pytest
from fastapi.testclient import TestClient

from solo_system.core.config import Settings
from solo_system.main import create_app
from solo_system.schemas.progress import ProgressEntry
from solo_system.schemas.state import ProgressState
from solo_system.services.progress_log import upsert_history
from solo_system.services.state_gateway import GatewayError

TEST_API_KEY = "test-app-key-1234567890"


@pytest.fixture()
def client(tmp_path) -> Generator[TestClient, None, None]:
    db_path = tmp_path / "test.db"
    settings = Settings(
        environment="test",
        database_url=f"sqlite+aiosqlite:///{db_path}",
        app_api_key=TEST_API_KEY,
        cors_origins=["*"],
    )
    app = create_app(settings)

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {TEST_API_KEY}"}


class InMemoryGateway:
    """Gateway fake keeping copies of everything written to it."""

    def __init__(self) -> None:
        self.states: dict[str, ProgressState] = {}
        self.histories: dict[str, list[ProgressEntry]] = {}
        self.saves: list[tuple[str, ProgressState]] = []
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise GatewayError("store unavailable")

    def load(self, user_id: str) -> ProgressState | None:
        self._check()
        stored = self.states.get(user_id)
        return stored.model_copy(deep=True) if stored is not None else None

    def save(self, user_id: str, state: ProgressState) -> None:
        self._check()
        self.states[user_id] = state.model_copy(deep=True)
        self.saves.append((user_id, state.model_copy(deep=True)))

    def load_history(self, user_id: str) -> list[ProgressEntry]:
        self._check()
        return list(self.histories.get(user_id, []))

    def append_history(self, user_id: str, entry: ProgressEntry) -> None:
        self._check()
        self.histories[user_id] = upsert_history(self.histories.get(user_id, []), entry)


@pytest.fixture()
def gateway() -> InMemoryGateway:
    return InMemoryGateway()


class FakeClock:
    def __init__(self, today: date) -> None:
        self.today = today

    def __call__(self) -> date:
        return self.today


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(date(2026, 3, 14))
