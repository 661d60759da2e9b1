import os
import shutil
import sys
import tempfile

import pytest
from fastapi.testclient import TestClient

# Add the parent directory to Python path so we can import the csp_collector package
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

TEST_DATA_PATH = tempfile.mkdtemp(prefix="csp-collector-tests-")
MASTER_SECRET = "test-master-secret"
os.environ["CSP_DATA_PATH"] = TEST_DATA_PATH
os.environ["CSP_SECRET_KEY"] = MASTER_SECRET
# Tests drive flushes explicitly
os.environ["CSP_FLUSH_INTERVAL_SECONDS"] = "3600"

from csp_collector.main import app  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def data_path():
    yield TEST_DATA_PATH
    shutil.rmtree(TEST_DATA_PATH, ignore_errors=True)


@pytest.fixture(scope="session")
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="session")
def master_secret():
    return MASTER_SECRET


@pytest.fixture
def auth_headers(client):
    response = client.post("/api/gen-token", headers={"Authorization": MASTER_SECRET})
    assert response.status_code == 200
    return {"Authorization": response.text}


@pytest.fixture
def analytics(client):
    store = client.app.state.analytics
    with store.connection() as conn:
        conn.execute("DELETE FROM csp_report")
    return store


@pytest.fixture
def report_buffer(client):
    buffer = client.app.state.report_buffer
    buffer.drain()
    return buffer
