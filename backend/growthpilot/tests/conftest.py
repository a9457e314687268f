"""Pytest configuration for GrowthPilot tests

WHAT: Shared fixtures for service and HTTP endpoint tests
WHY: Every test gets an isolated in-memory database with the full schema
REFERENCES:
    - growthpilot/main.py: FastAPI application
    - growthpilot/database.py: get_db (overridden here)
    - growthpilot/models.py: ORM schema
"""

import os
import uuid
from datetime import date
from typing import Generator, Optional

import pytest

# Set test environment before growthpilot modules are imported
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from growthpilot import models  # noqa: E402
from growthpilot.utils.cache import TTLCache  # noqa: E402


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def test_db_engine():
    """In-memory SQLite engine shared by every connection of one test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(bind=engine)

    yield engine

    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def test_db_session(test_db_engine) -> Generator[Session, None, None]:
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine)
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


# ============================================================================
# Seed data
# ============================================================================

class Seeder:
    """Builds the User -> Client -> Campaign -> AdSet -> Ad chain for tests."""

    def __init__(self, db: Session):
        self.db = db

    def user(self, email: Optional[str] = None) -> models.User:
        user = models.User(user_id=uuid.uuid4(), email=email or f"{uuid.uuid4().hex[:8]}@agency.test")
        self.db.add(user)
        self.db.flush()
        return user

    def client(
        self,
        user: models.User,
        name: str = "Acme",
        percentage: Optional[float] = None,
        basis: str = "total_revenue",
    ) -> models.Client:
        client = models.Client(client_id=uuid.uuid4(), user_id=user.user_id, name=name)
        if percentage is not None:
            client.commission_model = models.CommissionModel(
                commission_percentage=percentage,
                calculation_basis=basis,
            )
        self.db.add(client)
        self.db.flush()
        return client

    def campaign(self, client: models.Client, status: str = "ACTIVE") -> models.Campaign:
        campaign = models.Campaign(
            client_id=client.client_id,
            meta_campaign_id=f"cmp-{uuid.uuid4().hex[:10]}",
            campaign_name=f"Campaign {client.name}",
            status=status,
        )
        self.db.add(campaign)
        self.db.flush()
        return campaign

    def ad(
        self,
        campaign: models.Campaign,
        meta_ad_id: Optional[str] = None,
        budget: Optional[float] = None,
    ) -> models.Ad:
        ad_set = models.AdSet(
            campaign_id=campaign.campaign_id,
            meta_ad_set_id=f"as-{uuid.uuid4().hex[:10]}",
            ad_set_name="Ad set",
            budget=budget,
            status="ACTIVE",
        )
        self.db.add(ad_set)
        self.db.flush()
        ad = models.Ad(
            ad_set_id=ad_set.ad_set_id,
            meta_ad_id=meta_ad_id or f"ad-{uuid.uuid4().hex[:10]}",
            ad_name="Ad",
            status="ACTIVE",
        )
        self.db.add(ad)
        self.db.flush()
        return ad

    def metric(self, ad: models.Ad, day: date, spend: float = 0, purchases: int = 0) -> models.MetaMetric:
        row = models.MetaMetric(
            ad_id=ad.ad_id,
            date=day,
            spend=spend,
            purchases=purchases,
            conversions=purchases,
        )
        self.db.add(row)
        self.db.flush()
        return row


@pytest.fixture
def seed(test_db_session) -> Seeder:
    return Seeder(test_db_session)


# ============================================================================
# Application & Client Fixtures
# ============================================================================

@pytest.fixture
def overview_cache() -> TTLCache:
    """Fresh overview cache so cached results never cross tests."""
    return TTLCache(ttl_seconds=300)


@pytest.fixture
def app(test_db_session, overview_cache):
    """FastAPI app with get_db bound to the test session."""
    from growthpilot.database import get_db
    from growthpilot.deps import get_overview_cache
    from growthpilot.main import app as fastapi_app

    def _override_get_db():
        yield test_db_session

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    fastapi_app.dependency_overrides[get_overview_cache] = lambda: overview_cache
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a user."""
    from growthpilot.security import create_access_token

    def _headers(user: models.User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(str(user.user_id))}"}

    return _headers
