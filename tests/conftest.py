"""
Pytest configuration and fixtures
"""
import itertools
from datetime import date, datetime

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_workflow
from src.api.main import app
from src.db.connection import DatabaseManager
from src.db.models.lawyer import Lawyer
from src.services.case_workflow import CaseWorkflowService
from src.services.collaborators import (
    BorrowerRecord,
    InMemoryBorrowerLookup,
    LocalDocumentStorage,
    LoggingNotificationDispatch,
)
from src.utils.clock import FixedClock


@pytest.fixture
def db(tmp_path):
    """File-backed SQLite database per test"""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'workflow.db'}", timeout_seconds=30)
    manager.create_all()
    yield manager
    manager.close()


@pytest.fixture
def clock():
    """Clock pinned to 2025-07-21 10:30"""
    return FixedClock(datetime(2025, 7, 21, 10, 30))


@pytest.fixture
def borrowers():
    return InMemoryBorrowerLookup([
        BorrowerRecord(
            loan_account_number="LN1234567",
            borrower_name="Ravi Kumar",
            email="ravi.kumar@example.com",
            mobile="9876543210",
            address="12 MG Road, Pune",
        ),
        BorrowerRecord(
            loan_account_number="LN4567890",
            borrower_name="Anita Desai",
            email="anita.desai@example.com",
            mobile="9123456780",
            address="44 Park Street, Kolkata",
        ),
    ])


@pytest.fixture
def dispatcher():
    return LoggingNotificationDispatch()


@pytest.fixture
def workflow(db, clock, borrowers, dispatcher, tmp_path):
    """Workflow wired to the test database and in-memory collaborators"""
    return CaseWorkflowService(
        db=db,
        clock=clock,
        borrower_lookup=borrowers,
        dispatcher=dispatcher,
        storage=LocalDocumentStorage(str(tmp_path / "uploads")),
    )


@pytest.fixture
def make_lawyer(workflow, db):
    """Factory creating a lawyer with a given current load"""
    counter = itertools.count(1)

    def _make(current_case_load=0, is_available=True, **overrides):
        n = next(counter)
        params = {
            "first_name": "Lawyer",
            "last_name": f"No{n}",
            "email": f"lawyer{n}@example.com",
            "bar_number": f"MH/{n:04d}/2015",
            "lawyer_type": "External",
            "specialization": "Civil Recovery",
            "jurisdiction": "Mumbai",
            "experience_years": 5,
            "max_case_load": 10,
            "success_rate_percent": 70,
        }
        params.update(overrides)
        lawyer = workflow.create_lawyer(**params)
        with db.get_db_session() as session:
            row = session.get(Lawyer, lawyer.lawyer_id)
            row.current_case_load = current_case_load
            row.is_available = is_available
        return workflow.get_lawyer(lawyer.lawyer_id)

    return _make


@pytest.fixture
def make_case(workflow):
    def _make(loan_account_number="LN1234567", **overrides):
        params = {
            "case_type": "Civil",
            "court_name": "City Civil Court, Mumbai",
            "case_filed_date": date(2025, 7, 1),
            "filing_jurisdiction": "Mumbai",
        }
        params.update(overrides)
        return workflow.create_case(loan_account_number, **params)

    return _make


@pytest.fixture
def client(workflow):
    """Test client using the test workflow"""
    app.dependency_overrides[get_workflow] = lambda: workflow
    yield TestClient(app)
    app.dependency_overrides.clear()
