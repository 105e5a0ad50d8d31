"""
MedTrack Test Suite
===================

This package contains all tests for the MedTrack medication adherence system.

Test Structure:
- test_tools/: Adherence calculator, calendar index, activity feed and scheduler
- test_services/: Service layer against an in-memory database
- test_api/: API endpoint tests for FastAPI routes
- conftest.py: Shared pytest fixtures

Running Tests:
    # Install with test dependencies
    pip install -e ".[test]"

    # Run all tests
    pytest

    # Run specific test module
    pytest tests/test_api/

    # Run only marked tests
    pytest -m "unit"
    pytest -m "api"
"""

# Test configuration
TEST_DATABASE_URL = "sqlite:///:memory:"

# Common test data
SAMPLE_MEDICATIONS = [
    {"name": "Metformin", "dosage": "500mg", "frequency": "twice daily"},
    {"name": "Lisinopril", "dosage": "10mg", "frequency": "once daily"},
    {"name": "Atorvastatin", "dosage": "20mg", "frequency": "once daily"},
]

__all__ = [
    "TEST_DATABASE_URL",
    "SAMPLE_MEDICATIONS",
]
