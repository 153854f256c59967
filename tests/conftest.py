import pytest
from fastapi.testclient import TestClient

from app.backend.main import app
from app.backend.security import AdminPolicy, RateLimiter
from app.database.db import get_table
from tests.fakes import FakeClock, FakeTable


@pytest.fixture
def table():
    return FakeTable()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(table, clock):
    app.dependency_overrides[get_table] = lambda: table
    app.state.rate_limiter = RateLimiter(limit=20, window_seconds=60, clock=clock)
    app.state.admin_policy = AdminPolicy.disabled()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def valid_payload():
    return {
        "jobName": "Riverside Amphitheater",
        "siteAddress": "100 River Rd, Springfield",
        "purchaseOrder": "PO-4471",
        "contactName": "Jordan Lee",
        "contactEmail": "jordan@example.com",
        "contactPhone": "555-123-4567",
        "drawingLink": "https://drive.example.com/plans.pdf",
        "programmingNarrative": "Scene 1 warm wash, scene 2 full.",
        "fixturesOperable": "yes",
        "wiringNotes": "DMX run along truss",
        "dmxAccessAvailable": True,
        "additionalNotes": "Gate code 1234",
    }
