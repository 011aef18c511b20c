# tests/test_health.py
"""Tests for service metadata endpoints and response headers."""

from fastapi import status


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


def test_root_describes_service(client) -> None:
    response = client.get("/")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["docs"] == "/docs"
    assert "version" in data


def test_security_headers_are_attached(client) -> None:
    response = client.get("/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Content-Security-Policy"].startswith("frame-ancestors 'self'")
    assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
