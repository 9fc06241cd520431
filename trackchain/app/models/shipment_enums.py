"""
Shipment and segment enumerations.
"""

import enum


class SegmentStatus(str, enum.Enum):
    """
    Custody status of one shipment segment.

    Status flow:
        PREPARING → PENDING_ACCEPTANCE → ACCEPTED → IN_TRANSIT
        → HANDOVER_READY → HANDOVER_COMPLETE
        PENDING_ACCEPTANCE → REJECTED
    """
    PREPARING = "PREPARING"  # Leg not reachable yet
    PENDING_ACCEPTANCE = "PENDING_ACCEPTANCE"  # Waiting for the owner to accept
    ACCEPTED = "ACCEPTED"
    IN_TRANSIT = "IN_TRANSIT"  # Owner has taken over the goods
    HANDOVER_READY = "HANDOVER_READY"  # Released, waiting for acknowledgement
    HANDOVER_COMPLETE = "HANDOVER_COMPLETE"
    REJECTED = "REJECTED"


TERMINAL_SEGMENT_STATUSES = frozenset({
    SegmentStatus.HANDOVER_COMPLETE,
    SegmentStatus.REJECTED,
})


class ShipmentStatus(str, enum.Enum):
    """Shipment status, always derived from segment statuses."""
    PREPARING = "PREPARING"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    CLOSED = "CLOSED"
    REJECTED = "REJECTED"


class LocationEvent(str, enum.Enum):
    """Kind of location observation recorded on a segment."""
    TAKEOVER = "TAKEOVER"
    HANDOVER = "HANDOVER"


class SupplierTab(str, enum.Enum):
    """Dashboard buckets the supplier views group segments into."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"
