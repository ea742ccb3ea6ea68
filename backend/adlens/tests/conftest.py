"""Pytest configuration for adlens integration tests

WHAT: Provides shared fixtures for service and HTTP endpoint tests
WHY: Ensures consistent test setup, database isolation and data factories
REFERENCES:
    - adlens/main.py: FastAPI application
    - adlens/database.py: Database configuration
    - adlens/models.py: Entities built by the factories below
"""

import pytest
import os
from datetime import date, datetime
from decimal import Decimal
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Ensure backend is in path
import sys
from pathlib import Path
BACKEND_ROOT = Path(__file__).resolve().parents[2]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

# Set test environment
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from adlens.models import (  # noqa: E402
    AdAccountConnection,
    AdObjectiveEnum,
    AdPlatformEnum,
    AiInsight,
    Campaign,
    CampaignMetrics,
    ConnectionStatusEnum,
    User,
)


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def test_db_engine():
    """Create in-memory test database engine."""
    # StaticPool keeps one connection, so TestClient worker threads see the same tables
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    from adlens.database import Base
    Base.metadata.create_all(bind=engine)

    yield engine

    # Cleanup
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def test_db_session(test_db_engine) -> Generator[Session, None, None]:
    """Create test database session with rollback."""
    SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine
    )

    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


# ============================================================================
# Application & Client Fixtures
# ============================================================================

@pytest.fixture
def app(test_db_session):
    """Create FastAPI test application."""
    from adlens.main import create_app

    test_app = create_app()

    # Override database dependency
    from adlens.database import get_db

    def override_get_db():
        yield test_db_session

    test_app.dependency_overrides[get_db] = override_get_db

    return test_app


@pytest.fixture
def client(app) -> TestClient:
    """Create TestClient for HTTP testing."""
    return TestClient(app)


# ============================================================================
# Data Factories
# ============================================================================

@pytest.fixture
def make_user(test_db_session):
    """Factory: persist a user."""
    counter = {"n": 0}

    def _make(email=None, name="Test User", company_name=None):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            name=name,
            company_name=company_name,
        )
        test_db_session.add(user)
        test_db_session.commit()
        return user

    return _make


@pytest.fixture
def make_connection(test_db_session):
    """Factory: persist an ad account connection (connected by default)."""
    counter = {"n": 0}

    def _make(user, platform=AdPlatformEnum.meta_ads, status=ConnectionStatusEnum.connected, last_sync_at=None):
        counter["n"] += 1
        connection = AdAccountConnection(
            user_id=user.id,
            platform=platform,
            account_id=f"acct_{counter['n']}",
            account_name=f"Account {counter['n']}",
            access_token="token",
            status=status,
            last_sync_at=last_sync_at,
        )
        test_db_session.add(connection)
        test_db_session.commit()
        return connection

    return _make


@pytest.fixture
def make_campaign(test_db_session):
    """Factory: persist a campaign under a connection."""
    counter = {"n": 0}

    def _make(connection, objective=AdObjectiveEnum.conversion, name=None):
        counter["n"] += 1
        campaign = Campaign(
            connection_id=connection.id,
            platform_campaign_id=f"cmp_{counter['n']}",
            name=name or f"Campaign {counter['n']}",
            objective=objective,
            status="ACTIVE",
        )
        test_db_session.add(campaign)
        test_db_session.commit()
        return campaign

    return _make


@pytest.fixture
def make_metrics(test_db_session):
    """Factory: persist one daily metrics row.

    Defaults are small round numbers; override whatever the test asserts on.
    """

    def _make(
        campaign,
        day: date,
        spend="100.00",
        impressions=1000,
        clicks=50,
        conversions=5,
        conversion_value="300.00",
        ctr=5.0,
        cpc="2.0000",
        cpm="100.0000",
        roas=3.0,
        **extra,
    ):
        row = CampaignMetrics(
            campaign_id=campaign.id,
            date=day,
            impressions=impressions,
            clicks=clicks,
            spend=Decimal(spend),
            conversions=conversions,
            conversion_value=Decimal(conversion_value),
            ctr=ctr,
            cpc=Decimal(cpc),
            cpm=Decimal(cpm),
            roas=roas,
            **extra,
        )
        test_db_session.add(row)
        test_db_session.commit()
        return row

    return _make


@pytest.fixture
def make_insight(test_db_session):
    """Factory: persist an insight directly (bypassing templates)."""

    def _make(
        user,
        title="Insight",
        insight_type="key_metrics",
        platform=AdPlatformEnum.meta_ads,
        objective=None,
        confidence_score=0.5,
        created_at=None,
    ):
        insight = AiInsight(
            user_id=user.id,
            insight_type=insight_type,
            title=title,
            content="content",
            recommendations="recommendations",
            confidence_score=confidence_score,
            platform=platform,
            objective=objective,
            created_at=created_at or datetime.utcnow(),
        )
        test_db_session.add(insight)
        test_db_session.commit()
        return insight

    return _make
