# tests/test_health.py
from typing import Any

from noa_api.core.settings import settings


def test_health_check(client: Any) -> None:
    """Verify the health endpoint reports the service as up."""
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_root_responds(client: Any) -> None:
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["name"] == settings.app_name
    assert r.json()["docs"] == "/docs"
