"""
End-to-end custody flow over HTTP.

Manufacturer plans CP-A → CP-B → CP-C for warehouse B; carrier A moves the
first leg, warehouse B moves and receives the second.
"""

import pytest

from trackchain.app.models.enums import OrgRole
from trackchain.tests.factories import (
    MANUFACTURER, CARRIER_A, WAREHOUSE_B, OUTSIDER, item_payload, route_payload
)

CUSTODY_POINT = {"latitude": 7.29, "longitude": 80.63}


@pytest.fixture
def carrier_headers(auth_headers):
    return auth_headers(CARRIER_A, OrgRole.SUPPLIER)


@pytest.fixture
def warehouse_headers(auth_headers):
    return auth_headers(WAREHOUSE_B, OrgRole.WAREHOUSE)


@pytest.fixture
async def planned(client, manufacturer_headers, catalog, checkpoints):
    response = await client.post("/api/shipments", json={
        "destinationPartyUUID": WAREHOUSE_B,
        "shipmentItems": [item_payload(catalog, 4)],
        "checkpoints": route_payload(checkpoints),
    }, headers=manufacturer_headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_shipment_camel_case(planned, catalog):
    assert planned["manufacturerUUID"] == MANUFACTURER
    assert planned["destinationPartyUUID"] == WAREHOUSE_B
    assert planned["status"] == "PREPARING"
    assert planned["route"] == "CP-A → CP-B → CP-C"
    assert planned["shipmentItems"][0]["packageId"] == catalog["package"].id
    assert planned["shipmentItems"][0]["quantity"] == 4

    first, second = planned["segments"]
    assert first["segmentOrder"] == 1
    assert first["status"] == "PENDING_ACCEPTANCE"
    assert first["ownerUUID"] == CARRIER_A
    assert first["timeTolerance"] == "2h"
    assert first["area"] == {"country": "Sri Lanka", "state": "Central"}
    assert second["status"] == "PREPARING"
    assert second["ownerUUID"] == WAREHOUSE_B


@pytest.mark.asyncio
async def test_overdraw_returns_conflict(client, manufacturer_headers, catalog, checkpoints, planned):
    response = await client.post("/api/shipments", json={
        "destinationPartyUUID": WAREHOUSE_B,
        "shipmentItems": [item_payload(catalog, 7)],
        "checkpoints": route_payload(checkpoints),
    }, headers=manufacturer_headers)
    assert response.status_code == 409
    body = response.json()
    assert body["error_code"] == "ERR_INVENTORY_001"
    assert body["details"]["available"] == 6

    response = await client.get(f"/api/packages/{catalog['package'].id}", headers=manufacturer_headers)
    assert response.json()["quantity_available"] == 6


@pytest.mark.asyncio
async def test_supplier_cannot_plan(client, auth_headers, catalog, checkpoints):
    response = await client.post("/api/shipments", json={
        "destinationPartyUUID": WAREHOUSE_B,
        "shipmentItems": [item_payload(catalog, 1)],
        "checkpoints": route_payload(checkpoints),
    }, headers=auth_headers(CARRIER_A, OrgRole.SUPPLIER))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_zero_quantity_rejected_by_schema(client, manufacturer_headers, catalog, checkpoints):
    response = await client.post("/api/shipments", json={
        "destinationPartyUUID": WAREHOUSE_B,
        "shipmentItems": [item_payload(catalog, 0)],
        "checkpoints": route_payload(checkpoints),
    }, headers=manufacturer_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_full_custody_flow(client, planned, manufacturer_headers, carrier_headers, warehouse_headers):
    seg1, seg2 = (s["id"] for s in planned["segments"])

    response = await client.get("/api/shipment-segments/pending", headers=carrier_headers)
    assert [s["id"] for s in response.json()["segments"]] == [seg1]
    assert response.json()["segments"][0]["actions"]["canAccept"] is True

    response = await client.post(f"/api/shipment-segments/accept/{seg1}", headers=carrier_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ACCEPTED"
    assert body["shipmentStatus"] == "IN_TRANSIT"
    assert body["supplierTab"] == "ACCEPTED"
    assert body["actions"]["canTakeover"] is True

    response = await client.post(f"/api/shipment-segments/takeover/{seg1}", json={"latitude": 6.93, "longitude": 79.85},
                                 headers=carrier_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "IN_TRANSIT"

    response = await client.post(f"/api/shipment-segments/handover/{seg1}", json=CUSTODY_POINT,
                                 headers=carrier_headers)
    assert response.json()["status"] == "HANDOVER_READY"
    assert response.json()["supplierTab"] == "DELIVERED"

    response = await client.post(f"/api/shipment-segments/accept/{seg2}", headers=warehouse_headers)
    assert response.json()["status"] == "ACCEPTED"
    response = await client.post(f"/api/shipment-segments/takeover/{seg2}", json=CUSTODY_POINT,
                                 headers=warehouse_headers)
    assert response.json()["status"] == "IN_TRANSIT"
    response = await client.post(f"/api/shipment-segments/handover/{seg2}", json=CUSTODY_POINT,
                                 headers=warehouse_headers)
    assert response.json()["actions"]["canDeliver"] is True

    response = await client.post(f"/api/shipment-segments/deliver/{seg2}", headers=warehouse_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "HANDOVER_COMPLETE"
    assert response.json()["shipmentStatus"] == "DELIVERED"

    response = await client.post(f"/api/shipments/{planned['id']}/close", headers=manufacturer_headers)
    assert response.status_code == 200
    shipment = response.json()
    assert shipment["status"] == "CLOSED"
    assert shipment["closedAt"] is not None
    assert all(s["supplierTab"] == "CLOSED" for s in shipment["segments"])


@pytest.mark.asyncio
async def test_non_owner_cannot_accept(client, planned, auth_headers):
    seg1 = planned["segments"][0]["id"]
    response = await client.post(
        f"/api/shipment-segments/accept/{seg1}", headers=auth_headers(OUTSIDER, OrgRole.SUPPLIER)
    )
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_002"


@pytest.mark.asyncio
async def test_out_of_order_transition_conflicts(client, planned, carrier_headers):
    seg1 = planned["segments"][0]["id"]
    response = await client.post(f"/api/shipment-segments/handover/{seg1}", json=CUSTODY_POINT,
                                 headers=carrier_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_location_out_of_range_rejected(client, planned, carrier_headers):
    seg1 = planned["segments"][0]["id"]
    await client.post(f"/api/shipment-segments/accept/{seg1}", headers=carrier_headers)
    response = await client.post(f"/api/shipment-segments/takeover/{seg1}",
                                 json={"latitude": 91, "longitude": 0}, headers=carrier_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_reject_releases_stock(client, planned, carrier_headers, manufacturer_headers, catalog):
    seg1 = planned["segments"][0]["id"]
    response = await client.post(f"/api/shipment-segments/reject/{seg1}",
                                 json={"reason": "No cold storage available"}, headers=carrier_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "REJECTED"
    assert body["rejectionReason"] == "No cold storage available"
    assert body["shipmentStatus"] == "REJECTED"
    assert body["supplierTab"] == "CANCELLED"

    response = await client.get(f"/api/packages/{catalog['package'].id}", headers=manufacturer_headers)
    assert response.json()["quantity_available"] == 10


@pytest.mark.asyncio
async def test_reject_requires_reason(client, planned, carrier_headers):
    seg1 = planned["segments"][0]["id"]
    response = await client.post(f"/api/shipment-segments/reject/{seg1}", json={"reason": ""},
                                 headers=carrier_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_shipment_visible_to_parties_only(client, planned, carrier_headers, auth_headers, admin_headers):
    response = await client.get(f"/api/shipments/{planned['id']}", headers=carrier_headers)
    assert response.status_code == 200

    response = await client.get(f"/api/shipments/{planned['id']}", headers=auth_headers(OUTSIDER))
    assert response.status_code == 403

    response = await client.get(f"/api/shipments/{planned['id']}", headers=admin_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_list_shipments_page(client, planned, manufacturer_headers):
    response = await client.get("/api/shipments", params={"limit": 5}, headers=manufacturer_headers)
    assert response.status_code == 200
    body = response.json()
    assert [s["id"] for s in body["shipments"]] == [planned["id"]]
    assert body["hasMore"] is False
    assert body["cursor"] is None


@pytest.mark.asyncio
async def test_invalid_cursor(client, manufacturer_headers):
    response = await client.get("/api/shipments", params={"cursor": "%%%"}, headers=manufacturer_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_then_locked(client, planned, manufacturer_headers, carrier_headers, checkpoints):
    direct = [{"start_checkpoint_id": checkpoints["a"].id, "end_checkpoint_id": checkpoints["c"].id}]
    response = await client.put(f"/api/shipments/{planned['id']}", json={"checkpoints": direct},
                                headers=manufacturer_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["route"] == "CP-A → CP-C"
    assert body["segments"][0]["ownerUUID"] == WAREHOUSE_B

    segment_id = body["segments"][0]["id"]
    response = await client.post(f"/api/shipment-segments/accept/{segment_id}",
                                 headers=carrier_headers)
    assert response.status_code == 403

    response = await client.put(f"/api/shipments/{planned['id']}", json={"checkpoints": route_payload(checkpoints)},
                                headers=manufacturer_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_segments_by_tab_and_area(client, planned, carrier_headers, warehouse_headers):
    seg1 = planned["segments"][0]["id"]
    await client.post(f"/api/shipment-segments/accept/{seg1}", headers=carrier_headers)

    response = await client.get("/api/shipment-segments", params={"status": "ACCEPTED"}, headers=carrier_headers)
    assert [s["id"] for s in response.json()["segments"]] == [seg1]

    response = await client.get("/api/shipment-segments", params={"status": "PENDING"}, headers=carrier_headers)
    assert response.json()["total"] == 0

    response = await client.get("/api/shipment-segments", params={"area": "kandy"}, headers=carrier_headers)
    assert response.json()["total"] == 1

    response = await client.get("/api/shipment-segments", params={"area": "mumbai"}, headers=carrier_headers)
    assert response.json()["total"] == 0

    response = await client.get("/api/shipment-segments", params={"status": "PENDING"}, headers=warehouse_headers)
    assert [s["segmentOrder"] for s in response.json()["segments"]] == [2]


@pytest.mark.asyncio
async def test_incoming_for_other_org_forbidden(client, planned, carrier_headers):
    response = await client.get(f"/api/shipments/incoming/{CARRIER_A}", headers=carrier_headers)
    assert response.json()["total"] == 1

    response = await client.get(f"/api/shipments/incoming/{WAREHOUSE_B}", headers=carrier_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_segment_reads_load_whole_route(client, planned, carrier_headers):
    """Every read builds actions from the full route in a request session of its own."""
    seg1, seg2 = (s["id"] for s in planned["segments"])

    response = await client.get("/api/shipment-segments/pending", headers=carrier_headers)
    assert response.status_code == 200, response.text
    assert [s["id"] for s in response.json()["segments"]] == [seg1]

    response = await client.get("/api/shipment-segments", headers=carrier_headers)
    assert response.status_code == 200, response.text
    assert response.json()["segments"][0]["actions"]["canAccept"] is True

    response = await client.get(f"/api/shipment-segments/{seg1}", headers=carrier_headers)
    assert response.status_code == 200, response.text
    assert response.json()["shipmentStatus"] == "PREPARING"

    response = await client.get(f"/api/shipments/incoming/{CARRIER_A}", headers=carrier_headers)
    assert response.status_code == 200, response.text
    assert [s["id"] for s in response.json()["segments"]] == [seg1]

    response = await client.get(f"/api/shipment-segments/{seg2}", headers=carrier_headers)
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "PREPARING"
    assert response.json()["actions"]["canAccept"] is False
