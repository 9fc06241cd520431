"""
Failure mode tests: dependencies that go away mid-flight.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select

import trackchain.app.core.redis_client as redis_client_module
from trackchain.app.main import app
from trackchain.app.core.exceptions import InsufficientInventoryError
from trackchain.app.domain.shipments import planner as planner_module
from trackchain.app.domain.shipments.planner import ShipmentPlanner
from trackchain.app.models.audit_log import AuditLog
from trackchain.app.models.enums import OrgRole
from trackchain.tests.factories import MANUFACTURER, CARRIER_A, WAREHOUSE_B, item_input, two_leg_route, item_payload, route_payload


@pytest.fixture
def redis_down(mocker):
    client = mocker.MagicMock()
    client.exists = mocker.AsyncMock(side_effect=ConnectionError("redis unreachable"))
    client.set = mocker.AsyncMock(side_effect=ConnectionError("redis unreachable"))
    client.ping = mocker.AsyncMock(side_effect=ConnectionError("redis unreachable"))
    mocker.patch.object(redis_client_module, "redis_client", client)
    return client


@pytest.mark.asyncio
async def test_revocation_checks_fail_open(client, auth_headers, redis_down):
    response = await client.get("/api/auth/me", headers=auth_headers(CARRIER_A, OrgRole.SUPPLIER))
    assert response.status_code == 200
    redis_down.exists.assert_awaited()


@pytest.mark.asyncio
async def test_logout_reports_unrevoked_when_redis_down(client, auth_headers, redis_down):
    response = await client.post("/api/auth/logout", headers=auth_headers(CARRIER_A, OrgRole.SUPPLIER))
    assert response.status_code == 200
    assert response.json()["revoked"] is False


@pytest.mark.asyncio
async def test_health_degraded_when_redis_down(client, redis_down):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "degraded"


@pytest.mark.asyncio
async def test_audit_failure_rolls_back_shipment(client, manufacturer_headers, catalog, checkpoints, mocker):
    """A failure after stock was reserved leaves neither shipment nor reservation."""
    mocker.patch.object(planner_module, "log_event", mocker.AsyncMock(side_effect=RuntimeError("audit store down")))

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as failing_client:
        response = await failing_client.post("/api/shipments", json={
            "destinationPartyUUID": WAREHOUSE_B,
            "shipmentItems": [item_payload(catalog, 4)],
            "checkpoints": route_payload(checkpoints),
        }, headers=manufacturer_headers)
    assert response.status_code == 500
    assert response.json()["error_code"] == "ERR_INTERNAL_SERVER"

    response = await client.get(f"/api/packages/{catalog['package'].id}", headers=manufacturer_headers)
    assert response.json()["quantity_available"] == 10

    response = await client.get("/api/shipments", headers=manufacturer_headers)
    assert response.json()["shipments"] == []


@pytest.mark.asyncio
async def test_failed_reservation_writes_no_audit(db_session, catalog, checkpoints):
    with pytest.raises(InsufficientInventoryError):
        await ShipmentPlanner.create_shipment(
            db_session, MANUFACTURER, WAREHOUSE_B, [item_input(catalog, 50)], two_leg_route(checkpoints)
        )
    await db_session.rollback()

    result = await db_session.execute(select(AuditLog).where(AuditLog.action == "SHIPMENT_CREATED"))
    assert result.scalars().all() == []
