"""
Shipment Pydantic schemas.

Request bodies keep the field names the consuming UI already sends:
`manufacturerUUID`, `destinationPartyUUID`, `shipmentItems` and
`checkpoints`, with snake_case keys inside items and legs.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from trackchain.app.models.shipment_enums import ShipmentStatus
from trackchain.app.schemas.base import CamelSchema
from trackchain.app.schemas.segment import SegmentResponse


class ShipmentItemInput(BaseModel):
    """One reserved quantity from a package."""
    product_category_id: str
    product_uuid: str
    batch_id: str
    package_id: str
    quantity: int = Field(..., gt=0, description="Units reserved from the package")


class SegmentInput(BaseModel):
    """One leg of the planned route."""
    start_checkpoint_id: int
    end_checkpoint_id: int
    estimated_arrival_date: Optional[datetime] = None
    time_tolerance: Optional[str] = Field(None, max_length=50)
    expected_ship_date: Optional[datetime] = None
    required_action: Optional[str] = Field(None, max_length=500)
    segment_order: Optional[int] = Field(None, ge=1)


class ShipmentCreate(BaseModel):
    """Schema for planning a shipment."""
    manufacturer_org_id: Optional[str] = Field(None, alias="manufacturerUUID")
    destination_party_org_id: str = Field(..., alias="destinationPartyUUID", min_length=1)
    items: List[ShipmentItemInput] = Field(..., alias="shipmentItems")
    segments: List[SegmentInput] = Field(..., alias="checkpoints")

    model_config = {"populate_by_name": True}


class ShipmentUpdate(BaseModel):
    """Schema for re-planning a shipment that has not started moving."""
    destination_party_org_id: Optional[str] = Field(None, alias="destinationPartyUUID", min_length=1)
    segments: Optional[List[SegmentInput]] = Field(None, alias="checkpoints")

    model_config = {"populate_by_name": True}


class ShipmentItemResponse(CamelSchema):
    id: int
    product_category_id: str
    product_id: str
    batch_id: str
    package_id: str
    quantity: int
    released: bool


class ShipmentResponse(CamelSchema):
    """Shipment with its items and route."""
    id: str
    manufacturer_org_id: str = Field(..., alias="manufacturerUUID")
    destination_party_org_id: str = Field(..., alias="destinationPartyUUID")
    status: ShipmentStatus
    route: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    items: List[ShipmentItemResponse] = Field(default_factory=list, alias="shipmentItems")
    segments: List[SegmentResponse] = Field(default_factory=list)


class ShipmentListResponse(CamelSchema):
    """One page of shipments; `cursor` is None on the last page."""
    shipments: List[ShipmentResponse]
    cursor: Optional[str] = None
    has_more: bool = False
