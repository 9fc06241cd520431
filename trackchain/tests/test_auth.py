"""
Bearer token handling: validation, logout revocation, organization
suspension and admin-only routes.
"""

import pytest
from datetime import timedelta

from trackchain.app.core.jwt import create_access_token
from trackchain.app.models.enums import OrgRole
from trackchain.tests.factories import CARRIER_A, ADMIN_ORG, make_token


@pytest.mark.asyncio
async def test_me_reflects_token(client, auth_headers):
    response = await client.get("/api/auth/me", headers=auth_headers(CARRIER_A, OrgRole.SUPPLIER))
    assert response.status_code == 200
    assert response.json() == {"org_id": CARRIER_A, "role": "SUPPLIER", "subject": f"user@{CARRIER_A}"}


@pytest.mark.asyncio
async def test_missing_token_rejected(client):
    response = await client.get("/api/checkpoints")
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_garbage_token_rejected(client):
    response = await client.get("/api/checkpoints", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_expired_token_rejected(client):
    token = create_access_token(
        data={"sub": "late", "org_id": CARRIER_A, "role": "SUPPLIER"},
        expires_delta=timedelta(minutes=-5),
    )
    response = await client.get("/api/checkpoints", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unknown_role_rejected(client):
    token = create_access_token(data={"sub": "x", "org_id": CARRIER_A, "role": "PILOT"})
    response = await client.get("/api/checkpoints", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_logout_revokes_token(client):
    headers = {"Authorization": f"Bearer {make_token(CARRIER_A, OrgRole.SUPPLIER)}"}
    response = await client.post("/api/auth/logout", headers=headers)
    assert response.status_code == 200
    assert response.json()["revoked"] is True

    response = await client.get("/api/auth/me", headers=headers)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_suspend_and_reinstate_org(client, auth_headers, admin_headers):
    carrier = auth_headers(CARRIER_A, OrgRole.SUPPLIER)

    response = await client.post(f"/api/admin/orgs/{CARRIER_A}/suspend", json={"reason": "Audit"},
                                 headers={**admin_headers, "X-Correlation-ID": "suspend-1"})
    assert response.status_code == 200
    assert response.json()["action"] == "ORG_SUSPENDED"

    response = await client.get("/api/auth/me", headers=carrier)
    assert response.status_code == 401

    response = await client.post(f"/api/admin/orgs/{CARRIER_A}/reinstate", json={}, headers=admin_headers)
    assert response.status_code == 200

    response = await client.get("/api/auth/me", headers=carrier)
    assert response.status_code == 200

    response = await client.get("/api/admin/audit-logs", params={"entity_id": CARRIER_A}, headers=admin_headers)
    actions = [log["action"] for log in response.json()["logs"]]
    assert set(actions) == {"ORG_SUSPENDED", "ORG_REINSTATED"}
    suspended = next(log for log in response.json()["logs"] if log["action"] == "ORG_SUSPENDED")
    assert suspended["correlation_id"] == "suspend-1"
    assert suspended["meta_data"] == {"reason": "Audit"}


@pytest.mark.asyncio
async def test_admin_cannot_suspend_itself(client, admin_headers):
    response = await client.post(f"/api/admin/orgs/{ADMIN_ORG}/suspend", json={}, headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_admin_routes_require_admin(client, manufacturer_headers):
    response = await client.get("/api/admin/audit-logs", headers=manufacturer_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_request_gets_correlation_id(client, auth_headers):
    response = await client.get(
        "/api/auth/me",
        headers={**auth_headers(CARRIER_A), "X-Correlation-ID": "trace-123"},
    )
    assert response.headers["X-Correlation-ID"] == "trace-123"


@pytest.mark.asyncio
async def test_health_reports_revocation_store(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["redis"] == "up"


@pytest.mark.asyncio
async def test_token_without_org_rejected(client):
    token = create_access_token(data={"sub": "someone", "role": "SUPPLIER"})
    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert "org_id" in response.json()["message"]
