"""Pytest configuration for API integration tests

WHAT: Provides shared fixtures for HTTP endpoint tests
WHY: Ensures consistent test setup and database isolation
REFERENCES:
    - spendboard/main.py: FastAPI application
    - spendboard/database.py: Database configuration
"""

import os
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment (before spendboard.database is imported)
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DEFAULT_COST_DOMAIN", "marketing")


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def test_db_engine():
    """Create in-memory test database engine."""
    # StaticPool keeps one connection so every session sees the same database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    from spendboard.database import Base
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def test_db_session(test_db_engine) -> Generator[Session, None, None]:
    """Create test database session."""
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
    from spendboard.main import create_app

    test_app = create_app()

    # Override database dependency
    from spendboard.database import get_db

    def override_get_db():
        yield test_db_session

    test_app.dependency_overrides[get_db] = override_get_db

    return test_app


@pytest.fixture
def client(app) -> TestClient:
    """Create TestClient for HTTP testing."""
    return TestClient(app)


# ============================================================================
# Data Fixtures
# ============================================================================

@pytest.fixture
def organisation(test_db_session):
    """Two sectors, three branches (one generic) and two suppliers."""
    from spendboard import models

    cars = models.Sector(id="SEC-CARS", name="Auto")
    boats = models.Sector(id="SEC-BOATS", name="Nautica")
    test_db_session.add_all([
        cars,
        boats,
        models.Branch(id="B-MI", name="Milano", sectors=[cars]),
        models.Branch(id="B-RM", name="Roma", sectors=[cars, boats]),
        models.Branch(id="B-GEN", name="Generico", sectors=[cars]),
        models.Supplier(id="S-RADIO", name="Radio Italia"),
        models.Supplier(id="S-PRINT", name="Affissioni Srl"),
    ])
    test_db_session.commit()
    return {
        "sectors": ["SEC-CARS", "SEC-BOATS"],
        "branches": ["B-MI", "B-RM", "B-GEN"],
        "suppliers": ["S-RADIO", "S-PRINT"],
    }


@pytest.fixture
def yearly_contract(client, organisation):
    """1200 over 2025 with the radio supplier, one line item."""
    response = client.post("/contracts", json={
        "description": "Radio 2025",
        "supplier_id": "S-RADIO",
        "signing_date": "2024-12-15",
        "line_items": [
            {
                "description": "Spot giornalieri",
                "total_amount": "1.200,00",
                "start_date": "2025-01-01",
                "end_date": "2025-12-31",
                "sector_id": "SEC-CARS",
                "branch_id": "B-MI",
            },
        ],
    })
    assert response.status_code == 201
    return response.json()
