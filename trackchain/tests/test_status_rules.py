"""
Shipment status derivation and segment action flag tests.
"""

from types import SimpleNamespace

import pytest

from trackchain.app.domain.custody.status_rules import (
    derive_shipment_status, supplier_tab, available_actions, route_label
)
from trackchain.app.models.shipment_enums import SegmentStatus as S, ShipmentStatus, SupplierTab


@pytest.mark.parametrize("statuses, closed, expected", [
    ([S.PENDING_ACCEPTANCE, S.PREPARING], False, ShipmentStatus.PREPARING),
    ([S.ACCEPTED, S.PENDING_ACCEPTANCE], False, ShipmentStatus.IN_TRANSIT),
    ([S.HANDOVER_READY, S.PENDING_ACCEPTANCE], False, ShipmentStatus.IN_TRANSIT),
    ([S.HANDOVER_COMPLETE, S.ACCEPTED], False, ShipmentStatus.IN_TRANSIT),
    ([S.HANDOVER_COMPLETE, S.HANDOVER_COMPLETE], False, ShipmentStatus.DELIVERED),
    ([S.HANDOVER_COMPLETE, S.HANDOVER_COMPLETE], True, ShipmentStatus.CLOSED),
    ([S.HANDOVER_COMPLETE, S.REJECTED], False, ShipmentStatus.REJECTED),
    ([S.REJECTED, S.PREPARING], True, ShipmentStatus.REJECTED),
    ([], False, ShipmentStatus.PREPARING),
])
def test_derive_shipment_status(statuses, closed, expected):
    assert derive_shipment_status(statuses, closed=closed) == expected


def test_supplier_tabs():
    assert supplier_tab(S.PENDING_ACCEPTANCE) == SupplierTab.PENDING
    assert supplier_tab(S.PREPARING) == SupplierTab.PENDING
    assert supplier_tab(S.ACCEPTED) == SupplierTab.ACCEPTED
    assert supplier_tab(S.IN_TRANSIT) == SupplierTab.IN_TRANSIT
    assert supplier_tab(S.HANDOVER_READY) == SupplierTab.DELIVERED
    assert supplier_tab(S.HANDOVER_COMPLETE) == SupplierTab.DELIVERED
    assert supplier_tab(S.HANDOVER_COMPLETE, ShipmentStatus.CLOSED) == SupplierTab.CLOSED
    assert supplier_tab(S.REJECTED) == SupplierTab.CANCELLED


def _route(*specs):
    return [
        SimpleNamespace(id=f"seg-{i}", owner_org_id=owner, status=status,
                        start_checkpoint=SimpleNamespace(name=f"CP-{i}"), start_checkpoint_id=i,
                        end_checkpoint=SimpleNamespace(name=f"CP-{i + 1}"), end_checkpoint_id=i + 1)
        for i, (owner, status) in enumerate(specs, start=1)
    ]


def test_actions_for_pending_owner():
    route = _route(("a", S.PENDING_ACCEPTANCE), ("dest", S.PREPARING))
    actions = available_actions(route[0], route, "dest", ShipmentStatus.PREPARING, "a")
    assert actions["can_accept"] and actions["can_reject"]
    assert not actions["can_takeover"]

    other = available_actions(route[0], route, "dest", ShipmentStatus.PREPARING, "b")
    assert not any(other.values())


def test_takeover_waits_for_previous_handover():
    route = _route(("a", S.IN_TRANSIT), ("b", S.ACCEPTED))
    assert not available_actions(route[1], route, "b", ShipmentStatus.IN_TRANSIT, "b")["can_takeover"]

    route = _route(("a", S.HANDOVER_READY), ("b", S.ACCEPTED))
    assert available_actions(route[1], route, "b", ShipmentStatus.IN_TRANSIT, "b")["can_takeover"]


def test_only_destination_can_deliver_final_segment():
    route = _route(("a", S.HANDOVER_COMPLETE), ("dest", S.HANDOVER_READY))
    assert available_actions(route[1], route, "dest", ShipmentStatus.IN_TRANSIT, "dest")["can_deliver"]
    assert not available_actions(route[1], route, "dest", ShipmentStatus.IN_TRANSIT, "a")["can_deliver"]


def test_no_actions_on_rejected_shipment():
    route = _route(("a", S.PENDING_ACCEPTANCE), ("dest", S.REJECTED))
    actions = available_actions(route[0], route, "dest", ShipmentStatus.REJECTED, "a")
    assert not any(actions.values())


def test_route_label():
    route = _route(("a", S.PREPARING), ("b", S.PREPARING))
    assert route_label(route) == "CP-1 → CP-2 → CP-3"
    assert route_label([]) == ""
