"""Pytest fixtures for testing"""

import pytest
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from card_ledger.api.main import create_app
from card_ledger.infrastructure.database.models import Base, Card
from card_ledger.infrastructure.database.repositories import CardRepository
from card_ledger.infrastructure.database.session import get_db, get_session_factory


USER_ID = "user_ana"
OTHER_USER_ID = "user_bruno"

# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def session_factory() -> sessionmaker:
    """Factory for additional sessions against the test database"""
    return TestingSessionLocal


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def card(db: Session) -> Card:
    """Card closing on the 7th, due on the 15th"""
    card = CardRepository(db).create_card(
        user_id=USER_ID,
        alias="Everyday",
        brand="visa",
        closing_day=7,
        due_day=15,
        total_limit_cents=500_000,
    )
    db.commit()
    return card


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database, acting as USER_ID"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    return TestClient(app, headers={"X-User-ID": USER_ID})
