# mypy: ignore-errors
# tests/test_health.py
"""Tests for service-level endpoints."""

from fastapi import status

from mediagate.core.settings import settings


def test_health_check(client) -> None:
    """Test the health check endpoint."""
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


def test_root(client) -> None:
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["version"] == settings.app_version
