"""Shared pytest fixtures for mlb-edge-api tests."""
import os
import sys
from pathlib import Path
from datetime import datetime, timezone
from typing import AsyncGenerator, Generator

# Keep tests off the development database and out of production settings
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_JSON"] = "false"

import pytest
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


def fixed_clock(instant: datetime):
    """A clock that always returns the given instant (aware UTC)."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return lambda: instant


@pytest.fixture(autouse=True)
def isolated_events():
    """Fresh event bus subscriptions, analytics cache and breaker for every test."""
    from app.core.events import event_bus
    from app.core.circuit_breaker import reset_breaker
    from app.services.analytics_service import reset_performance_cache

    event_bus.clear()
    reset_performance_cache()
    reset_breaker()
    yield
    event_bus.clear()
    reset_performance_cache()


@pytest.fixture(scope="function")
def db_engine():
    """Isolated in-memory database shared by every connection of one test."""
    from app.core.database import build_engine, init_db

    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create fresh test database session with isolated in-memory database."""
    TestSessionLocal = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)
    session = TestSessionLocal()
    yield session
    session.close()


@pytest.fixture
def file_session_factory(tmp_path):
    """
    Session factory over an on-disk SQLite database.

    Each session gets its own connection, which is what concurrent writers
    look like in production.
    """
    from app.core.database import build_engine, init_db

    engine = build_engine(f"sqlite:///{tmp_path / 'race.db'}")
    init_db(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


# =============================================================================
# SAMPLE DATA
# =============================================================================

def game_payload(external_id: str, start_time: datetime, home="NYY", away="BOS", **extra) -> dict:
    names = {
        "NYY": "New York Yankees", "BOS": "Boston Red Sox", "LAD": "Los Angeles Dodgers",
        "SF": "San Francisco Giants", "CHC": "Chicago Cubs", "STL": "St. Louis Cardinals",
    }
    payload = {
        "external_id": external_id,
        "home_team": names.get(home, home),
        "away_team": names.get(away, away),
        "home_team_abbreviation": home,
        "away_team_abbreviation": away,
        "start_time": start_time,
    }
    payload.update(extra)
    return payload


def moneyline_pick(game_id: int, side: str = "home", confidence: float = 0.7, **extra) -> dict:
    payload = {
        "game_id": game_id,
        "pick_type": "moneyline",
        "pick_side": side,
        "confidence": confidence,
        "analysis": "Starter has a 2.10 ERA over his last five outings against this lineup.",
    }
    payload.update(extra)
    return payload


@pytest.fixture
def game_service(db_session):
    from app.services.game_service import GameService
    return GameService(db_session)


@pytest.fixture
def content_service(db_session):
    from app.services.content_service import ContentService
    return ContentService(db_session)


@pytest.fixture
def sample_slate(game_service, content_service):
    """
    Three games on 2025-06-01 (Eastern), deliberately created out of order.

    The 10:10 PM ET game starts after midnight UTC but still belongs to
    June 1. A fourth game is on June 2.
    """
    late = game_service.create_game(game_payload("g-late", datetime(2025, 6, 2, 2, 10), "LAD", "SF"))
    early = game_service.create_game(game_payload("g-early", datetime(2025, 6, 1, 17, 5), "CHC", "STL"))
    evening = game_service.create_game(game_payload("g-evening", datetime(2025, 6, 1, 23, 5)))
    next_day = game_service.create_game(game_payload("g-next", datetime(2025, 6, 2, 23, 5)))

    content_service.create_prediction(moneyline_pick(evening.id, "home", 0.72))
    content_service.create_prediction(moneyline_pick(
        late.id, "away", 0.81, tier="elite",
        home_win_probability=0.4, away_win_probability=0.6,
        analysis="x" * 250,
    ))
    return {"early": early, "evening": evening, "late": late, "next_day": next_day}


# =============================================================================
# FASTAPI CLIENT FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
async def async_client(db_session: Session) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing FastAPI endpoints."""
    from app.main import app
    from app.core.database import get_db

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def test_client(db_session):
    """
    Create FastAPI TestClient with a fresh database for each test.

    Note: We don't use context manager (with TestClient) because it conflicts
    with Prometheus middleware that's added during app module initialization.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/picks/today")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from app.main import app
    from app.core.database import get_db

    test_db_session = db_session

    def override_get_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "ADMIN_TOKEN", "test-admin-token")
    return {"X-Admin-Token": "test-admin-token"}


@pytest.fixture
def now_utc():
    return datetime.now(timezone.utc).replace(microsecond=0)
