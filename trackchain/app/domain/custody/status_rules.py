"""
Pure custody rules: shipment status derivation, dashboard buckets and
per-organization action flags. No I/O.
"""

from typing import Iterable, List, Optional, Sequence

from trackchain.app.models.shipment_enums import SegmentStatus, ShipmentStatus, SupplierTab

# Forward order of the custody flow; REJECTED sits outside it.
SEGMENT_FLOW: List[SegmentStatus] = [
    SegmentStatus.PREPARING,
    SegmentStatus.PENDING_ACCEPTANCE,
    SegmentStatus.ACCEPTED,
    SegmentStatus.IN_TRANSIT,
    SegmentStatus.HANDOVER_READY,
    SegmentStatus.HANDOVER_COMPLETE,
]

_ACTIVE_STATUSES = frozenset({
    SegmentStatus.ACCEPTED,
    SegmentStatus.IN_TRANSIT,
    SegmentStatus.HANDOVER_READY,
    SegmentStatus.HANDOVER_COMPLETE,
})

_HANDED_OVER = frozenset({SegmentStatus.HANDOVER_READY, SegmentStatus.HANDOVER_COMPLETE})

_SUPPLIER_TABS = {
    SegmentStatus.PREPARING: SupplierTab.PENDING,
    SegmentStatus.PENDING_ACCEPTANCE: SupplierTab.PENDING,
    SegmentStatus.ACCEPTED: SupplierTab.ACCEPTED,
    SegmentStatus.IN_TRANSIT: SupplierTab.IN_TRANSIT,
    SegmentStatus.HANDOVER_READY: SupplierTab.DELIVERED,
    SegmentStatus.HANDOVER_COMPLETE: SupplierTab.DELIVERED,
    SegmentStatus.REJECTED: SupplierTab.CANCELLED,
}


def derive_shipment_status(statuses: Iterable[SegmentStatus], closed: bool = False) -> ShipmentStatus:
    """
    Shipment status as a function of its segment statuses.

    This is the only place a shipment status is computed; the stored
    `Shipment.status` column is a projection of it.
    """
    statuses = list(statuses)
    all_complete = bool(statuses) and all(s == SegmentStatus.HANDOVER_COMPLETE for s in statuses)

    if closed and all_complete:
        return ShipmentStatus.CLOSED
    if any(s == SegmentStatus.REJECTED for s in statuses):
        return ShipmentStatus.REJECTED
    if all_complete:
        return ShipmentStatus.DELIVERED
    if any(s in _ACTIVE_STATUSES for s in statuses):
        return ShipmentStatus.IN_TRANSIT
    return ShipmentStatus.PREPARING


def supplier_tab(status: SegmentStatus, shipment_status: Optional[ShipmentStatus] = None) -> SupplierTab:
    """Dashboard bucket a segment is listed under."""
    if shipment_status == ShipmentStatus.CLOSED and status == SegmentStatus.HANDOVER_COMPLETE:
        return SupplierTab.CLOSED
    return _SUPPLIER_TABS[status]


def flow_position(status: SegmentStatus) -> int:
    """Index of a status in the forward flow, -1 for REJECTED."""
    try:
        return SEGMENT_FLOW.index(status)
    except ValueError:
        return -1


def predecessor_released(previous_status: Optional[SegmentStatus]) -> bool:
    """True when the previous leg (if any) has handed the goods over."""
    return previous_status is None or previous_status in _HANDED_OVER


def available_actions(segment, segments: Sequence, destination_org_id: str,
                      shipment_status: ShipmentStatus, org_id: str) -> dict:
    """
    What `org_id` may do with `segment` right now.

    `segments` is the shipment's full route ordered by segment_order.
    """
    actions = {
        "can_accept": False,
        "can_reject": False,
        "can_takeover": False,
        "can_handover": False,
        "can_deliver": False,
    }
    if shipment_status in (ShipmentStatus.REJECTED, ShipmentStatus.CLOSED):
        return actions

    index = next((i for i, s in enumerate(segments) if s.id == segment.id), None)
    previous = segments[index - 1] if index else None
    is_final = index is not None and index == len(segments) - 1
    is_owner = segment.owner_org_id == org_id

    if is_owner and segment.status == SegmentStatus.PENDING_ACCEPTANCE:
        actions["can_accept"] = True
        actions["can_reject"] = True
    if is_owner and segment.status == SegmentStatus.ACCEPTED:
        actions["can_takeover"] = predecessor_released(previous.status if previous is not None else None)
    if is_owner and segment.status == SegmentStatus.IN_TRANSIT:
        actions["can_handover"] = True
    if is_final and destination_org_id == org_id and segment.status == SegmentStatus.HANDOVER_READY:
        actions["can_deliver"] = True
    return actions


def route_label(segments: Sequence) -> str:
    """'A → B → C' summary of a route by checkpoint name."""
    if not segments:
        return ""
    names = [_checkpoint_name(segments[0].start_checkpoint, segments[0].start_checkpoint_id)]
    for segment in segments:
        names.append(_checkpoint_name(segment.end_checkpoint, segment.end_checkpoint_id))
    return " → ".join(names)


def _checkpoint_name(checkpoint, fallback_id) -> str:
    if checkpoint is not None and checkpoint.name:
        return checkpoint.name
    return f"#{fallback_id}"
