"""
Checkpoint registry API tests.
"""

import pytest

from trackchain.app.models.enums import OrgRole
from trackchain.tests.factories import CARRIER_A, WAREHOUSE_B

CHECKPOINT = {
    "name": "Colombo Port",
    "address": "Port City, Colombo, Western, Sri Lanka",
    "latitude": 6.94,
    "longitude": 79.84,
    "city": "Colombo",
    "state": "Western",
    "country": "Sri Lanka",
}


@pytest.mark.asyncio
async def test_register_checkpoint(client, auth_headers):
    response = await client.post("/api/checkpoints", json=CHECKPOINT, headers=auth_headers(CARRIER_A))
    assert response.status_code == 201
    data = response.json()
    assert data["owner_org_id"] == CARRIER_A
    assert data["name"] == "Colombo Port"
    assert isinstance(data["id"], int)

    response = await client.get(f"/api/checkpoints/{data['id']}", headers=auth_headers(WAREHOUSE_B))
    assert response.status_code == 200
    assert response.json()["country"] == "Sri Lanka"


@pytest.mark.asyncio
async def test_blank_name_rejected(client, auth_headers):
    response = await client.post(
        "/api/checkpoints", json={**CHECKPOINT, "name": "   "}, headers=auth_headers(CARRIER_A)
    )
    assert response.status_code == 400
    assert response.json()["details"]["field"] == "name"


@pytest.mark.asyncio
@pytest.mark.parametrize("field,value", [("latitude", 95), ("latitude", -90.5), ("longitude", 181)])
async def test_out_of_range_coordinates_rejected(client, auth_headers, field, value):
    response = await client.post(
        "/api/checkpoints", json={**CHECKPOINT, field: value}, headers=auth_headers(CARRIER_A)
    )
    assert response.status_code == 400
    assert response.json()["details"]["field"] == field


@pytest.mark.asyncio
async def test_non_numeric_coordinate_rejected(client, auth_headers):
    response = await client.post(
        "/api/checkpoints", json={**CHECKPOINT, "latitude": "north"}, headers=auth_headers(CARRIER_A)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_by_owner(client, auth_headers, checkpoints):
    response = await client.get(f"/api/checkpoints/owner/{WAREHOUSE_B}", headers=auth_headers(CARRIER_A))
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["checkpoints"][0]["name"] == "CP-B"

    response = await client.get("/api/checkpoints", headers=auth_headers(CARRIER_A))
    assert response.json()["total"] == 3


@pytest.mark.asyncio
async def test_register_for_other_org_requires_admin(client, auth_headers, admin_headers):
    response = await client.post(
        "/api/checkpoints", json={**CHECKPOINT, "owner_org_id": WAREHOUSE_B}, headers=auth_headers(CARRIER_A)
    )
    assert response.status_code == 403

    response = await client.post(
        "/api/checkpoints", json={**CHECKPOINT, "owner_org_id": WAREHOUSE_B}, headers=admin_headers
    )
    assert response.status_code == 201
    assert response.json()["owner_org_id"] == WAREHOUSE_B


@pytest.mark.asyncio
async def test_unknown_checkpoint(client, auth_headers):
    response = await client.get("/api/checkpoints/424242", headers=auth_headers(CARRIER_A, OrgRole.SUPPLIER))
    assert response.status_code == 404
