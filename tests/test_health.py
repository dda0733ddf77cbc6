"""
tests/test_health.py -- Integration tests for GET /api/v1/health.

Covers:
  - 200 response with status, version, and components fields
  - Both engines report 'ok' once the lifespan has run
  - No authentication required
"""

from __future__ import annotations


def test_health_returns_200_with_components(api_client):
    """Health endpoint returns 200 with status, version, and components."""
    client, _, _ = api_client
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["version"]
    assert data["components"] == {"threat_engine": "ok", "compliance_monitor": "ok"}


def test_health_no_auth_required(api_client):
    """Health endpoint is accessible without any authentication headers."""
    client, _, _ = api_client
    resp = client.get("/api/v1/health", headers={})
    assert resp.status_code == 200


def test_unknown_host_is_rejected(api_client):
    """TrustedHostMiddleware turns away Host headers outside ALLOWED_HOSTS."""
    client, _, _ = api_client
    resp = client.get("/api/v1/health", headers={"Host": "evil.example"})
    assert resp.status_code == 400
