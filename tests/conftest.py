"""
Pytest Configuration and Shared Fixtures
========================================

This module provides shared fixtures for all MedTrack tests.
Fixtures include database sessions, test clients, users, medications and logs.
"""

import os
import sys
import tempfile
from datetime import timedelta
from typing import Callable, Dict, Generator, Optional

# Settings are read at import time: point them at throwaway storage first
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["IMAGE_STORAGE_DIR"] = tempfile.mkdtemp(prefix="medtrack-test-images-")
os.environ["TIMEZONE"] = "UTC"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, drop_db, get_db, reset_db
from models import User, UserRole, CaretakerAssignment, Medication, MedicationLog
from tools.calendar_dates import format_calendar_date, today_in, utcnow
from app import app


PATIENT_KEY = "patient-test-key"
CARETAKER_KEY = "caretaker-test-key"


# ==================== DATABASE FIXTURES ====================

@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine with in-memory SQLite"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # Create all tables
    Base.metadata.create_all(bind=engine)

    yield engine

    # Cleanup
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a test database session"""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_engine
    )

    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def app_database() -> Generator[None, None, None]:
    """
    Fresh tables on the application's own engine, for services called
    without a session (they open get_db_context() themselves)
    """
    reset_db()
    yield
    drop_db()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client with database override"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    # entering the client runs the lifespan (feed registry, dose guard)
    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ==================== USER FIXTURES ====================

@pytest.fixture
def test_patient(db_session: Session) -> User:
    """Create and return a test patient"""
    patient = User(
        email="pat.patient@example.com",
        display_name="Pat Patient",
        role=UserRole.PATIENT,
        api_key=PATIENT_KEY,
    )
    db_session.add(patient)
    db_session.commit()
    db_session.refresh(patient)
    return patient


@pytest.fixture
def test_caretaker(db_session: Session) -> User:
    """Create and return a test caretaker"""
    caretaker = User(
        email="cary.caretaker@example.com",
        display_name="Cary Caretaker",
        role=UserRole.CARETAKER,
        api_key=CARETAKER_KEY,
    )
    db_session.add(caretaker)
    db_session.commit()
    db_session.refresh(caretaker)
    return caretaker


@pytest.fixture
def assigned_caretaker(db_session: Session, test_caretaker: User, test_patient: User) -> User:
    """Caretaker assigned to the test patient"""
    db_session.add(CaretakerAssignment(
        caretaker_id=test_caretaker.id,
        patient_id=test_patient.id
    ))
    db_session.commit()
    return test_caretaker


@pytest.fixture
def patient_headers(test_patient: User) -> Dict[str, str]:
    return {"X-API-Key": PATIENT_KEY}


@pytest.fixture
def caretaker_headers(test_caretaker: User) -> Dict[str, str]:
    return {"X-API-Key": CARETAKER_KEY}


# ==================== MEDICATION FIXTURES ====================

@pytest.fixture
def sample_medication_data() -> Dict[str, str]:
    """Sample medication data for creating test medications"""
    return {
        "name": "Metformin",
        "dosage": "500mg",
        "frequency": "twice daily",
        "instructions": "Take with meals",
    }


@pytest.fixture
def test_medication(db_session: Session, test_patient: User, sample_medication_data: Dict) -> Medication:
    """Medication created three days ago"""
    created_at = utcnow() - timedelta(days=3)
    medication = Medication(
        user_id=test_patient.id,
        created_at=created_at,
        updated_at=created_at,
        **sample_medication_data
    )
    db_session.add(medication)
    db_session.commit()
    db_session.refresh(medication)
    return medication


@pytest.fixture
def add_log(db_session: Session) -> Callable[..., MedicationLog]:
    """Factory writing a log ``days_ago`` days before today"""

    def _add(medication: Medication, days_ago: int = 0, created_at=None, image_url: Optional[str] = None):
        day = today_in("UTC") - timedelta(days=days_ago)
        created_at = created_at or utcnow()
        log = MedicationLog(
            user_id=medication.user_id,
            medication_id=medication.id,
            date_taken=format_calendar_date(day),
            taken_at=created_at,
            created_at=created_at,
            image_url=image_url,
        )
        db_session.add(log)
        db_session.commit()
        db_session.refresh(log)
        return log

    return _add


@pytest.fixture
def image_bytes() -> bytes:
    """Small PNG-looking payload"""
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


# ==================== PYTEST CONFIGURATION ====================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "api: mark test as API test"
    )
    config.addinivalue_line(
        "markers", "database: mark test as requiring database"
    )
