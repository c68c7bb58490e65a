import pytest
from fastapi.testclient import TestClient #fake http client that calls the FastAPI routes without running a real server.

from eduplan.main import app
from eduplan.services.generation_jobs import generation_jobs


@pytest.fixture() #test client
def client():
    generation_jobs.clear() #jobs from a previous test would otherwise leak into this one.

    with TestClient(app) as test_client:
        yield test_client

    generation_jobs.clear()
