"""
Shipment segment Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from trackchain.app.models.shipment_enums import SegmentStatus, ShipmentStatus, SupplierTab
from trackchain.app.schemas.base import CamelSchema


class LocationRecord(BaseModel):
    """Coordinates reported at takeover or handover."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class CheckpointSummary(CamelSchema):
    id: int
    name: str
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    latitude: float
    longitude: float


class AreaResponse(CamelSchema):
    country: str
    state: str


class SegmentActions(CamelSchema):
    """What the calling organization may do with a segment right now."""
    can_accept: bool = False
    can_reject: bool = False
    can_takeover: bool = False
    can_handover: bool = False
    can_deliver: bool = False


class SegmentResponse(CamelSchema):
    """Segment view with custody details and caller-specific hints."""
    id: str
    shipment_id: str
    segment_order: int
    status: SegmentStatus
    owner_org_id: str = Field(..., alias="ownerUUID")
    start_checkpoint: CheckpointSummary
    end_checkpoint: CheckpointSummary
    expected_ship_date: Optional[datetime] = None
    estimated_arrival_date: Optional[datetime] = None
    time_tolerance: Optional[str] = None
    required_action: Optional[str] = None
    rejection_reason: Optional[str] = None
    accepted_at: Optional[datetime] = None
    taken_over_at: Optional[datetime] = None
    handed_over_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    shipment_status: Optional[ShipmentStatus] = None
    supplier_tab: SupplierTab
    area: Optional[AreaResponse] = None
    area_tags: List[str] = Field(default_factory=list)
    actions: SegmentActions = Field(default_factory=SegmentActions)


class SegmentListResponse(CamelSchema):
    segments: List[SegmentResponse]
    total: int
