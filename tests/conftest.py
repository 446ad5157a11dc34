import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import httpx
import pytest
from fastapi.testclient import TestClient

from backend.app.config import Settings, get_settings
from backend.app.main import app
from backend.app.storage import ProjectStore, get_store
from backend.app.suno import SunoClient, get_suno_client

ADMIN_PASSWORD = "letmein"


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path, public_dir=tmp_path / "public", admin_password=ADMIN_PASSWORD)


@pytest.fixture
def store(settings):
    return ProjectStore(settings.projects_file)


@pytest.fixture
def suno_handler():
    """Replace ``.handler`` in a test to answer outbound Suno requests."""

    class Routes:
        requests = []

        def handler(self, request):
            return httpx.Response(404)

    return Routes()


@pytest.fixture
def client(settings, store, suno_handler):
    suno_handler.requests = []

    def transport(request):
        suno_handler.requests.append(request)
        return suno_handler.handler(request)

    async def fake_suno_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(transport)) as http:
            yield SunoClient(http, page_delay=0, batch_delay=0)

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_suno_client] = fake_suno_client
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def project(client):
    resp = client.post("/api/projects", json={"title": "Demo", "slug": "demo"})
    assert resp.status_code == 200
    return "demo"


@pytest.fixture
def admin_headers():
    return {"X-Admin-Password": ADMIN_PASSWORD}
