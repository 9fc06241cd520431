"""
Pre-Deploy and Smoke Test Script.

Runs the application in-process against the configured database and walks
one shipment through its whole custody chain:
1. Health Check
2. Checkpoints and catalog registration
3. Shipment planning -> accept -> takeover -> handover -> delivery -> close
"""

import sys
import uuid

from fastapi.testclient import TestClient
from trackchain.app.main import app
from trackchain.app.core.jwt import create_access_token


def print_step(step, msg):
    print(f"[{step}] {msg}")


def fail(msg):
    print(f"❌ FAILURE: {msg}")
    sys.exit(1)


def success(msg):
    print(f"✅ {msg}")


def headers_for(org_id: str, role: str) -> dict:
    token = create_access_token(data={"sub": f"smoke@{org_id}", "org_id": org_id, "role": role})
    return {"Authorization": f"Bearer {token}"}


def expect(response, status_code: int, what: str) -> dict:
    if response.status_code != status_code:
        fail(f"{what}: {response.status_code} {response.text}")
    return response.json()


def main():
    print("🚀 Starting Deployment Validation...")
    run = uuid.uuid4().hex[:8]
    manufacturer = headers_for(f"smoke-mfr-{run}", "MANUFACTURER")
    carrier_org = f"smoke-carrier-{run}"
    carrier = headers_for(carrier_org, "SUPPLIER")
    receiver_org = f"smoke-receiver-{run}"
    receiver = headers_for(receiver_org, "DISTRIBUTOR")

    with TestClient(app) as client:
        print_step("PRE-DEPLOY", "Checking /health...")
        expect(client.get("/health"), 200, "Health check")
        success("Health check passed")

        print_step("SETUP", "Registering checkpoints and catalog...")
        origin = expect(client.post("/api/checkpoints", json={
            "name": f"Smoke Origin {run}", "address": "Colombo, Western, Sri Lanka",
            "latitude": 6.93, "longitude": 79.85, "state": "Western", "country": "Sri Lanka",
        }, headers=carrier), 201, "Origin checkpoint")
        target = expect(client.post("/api/checkpoints", json={
            "name": f"Smoke Target {run}", "address": "Kandy, Central, Sri Lanka",
            "latitude": 7.29, "longitude": 80.63, "state": "Central", "country": "Sri Lanka",
        }, headers=receiver), 201, "Target checkpoint")

        category = expect(client.post("/api/product-categories", json={"name": f"Smoke {run}"},
                                      headers=manufacturer), 201, "Category")
        product = expect(client.post("/api/products", json={
            "name": "Smoke Vaccine", "category_id": category["id"],
            "required_start_temp": 2, "required_end_temp": 8,
        }, headers=manufacturer), 201, "Product")
        batch = expect(client.post("/api/batches", json={
            "product_id": product["id"], "facility": "Smoke Plant",
            "production_start": "2026-01-01T00:00:00Z", "production_end": "2026-01-01T08:00:00Z",
            "quantity_produced": 10,
        }, headers=manufacturer), 201, "Batch")
        package = expect(client.post("/api/packages", json={
            "batch_id": batch["id"], "package_code": f"SMOKE-{run}", "quantity": 10,
        }, headers=manufacturer), 201, "Package")
        success("Setup complete")

        print_step("SMOKE", "Running full custody flow...")
        shipment = expect(client.post("/api/shipments", json={
            "destinationPartyUUID": receiver_org,
            "shipmentItems": [{
                "product_category_id": category["id"], "product_uuid": product["id"],
                "batch_id": batch["id"], "package_id": package["id"], "quantity": 4,
            }],
            "checkpoints": [{"start_checkpoint_id": origin["id"], "end_checkpoint_id": target["id"]}],
        }, headers=manufacturer), 201, "Shipment")

        segment_id = shipment["segments"][0]["id"]
        position = {"latitude": 7.29, "longitude": 80.63}
        expect(client.post(f"/api/shipment-segments/accept/{segment_id}", headers=receiver), 200, "Accept")
        expect(client.post(f"/api/shipment-segments/takeover/{segment_id}", json=position,
                           headers=receiver), 200, "Takeover")
        expect(client.post(f"/api/shipment-segments/handover/{segment_id}", json=position,
                           headers=receiver), 200, "Handover")
        delivered = expect(client.post(f"/api/shipment-segments/deliver/{segment_id}", headers=receiver),
                           200, "Delivery")
        if delivered["shipmentStatus"] != "DELIVERED":
            fail(f"Shipment not delivered: {delivered['shipmentStatus']}")

        closed = expect(client.post(f"/api/shipments/{shipment['id']}/close", headers=manufacturer),
                        200, "Close")
        if closed["status"] != "CLOSED":
            fail(f"Shipment not closed: {closed['status']}")

        stock = expect(client.get(f"/api/packages/{package['id']}", headers=carrier), 200, "Package")
        if stock["quantity_available"] != 6:
            fail(f"Unexpected stock after shipment: {stock['quantity_available']}")
        success(f"Shipment {shipment['id']} delivered and closed")

    print("🎉 Deployment validation passed")


if __name__ == "__main__":
    main()
