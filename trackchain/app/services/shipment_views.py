"""
Response builders for shipments and segments.

Adds the caller-specific fields (available actions, dashboard bucket,
resolved area) on top of the stored rows.
"""

from typing import List, Optional

from trackchain.app.domain.area.area_resolver import resolve_area, area_tags
from trackchain.app.domain.custody.status_rules import available_actions, supplier_tab, route_label
from trackchain.app.models.shipment import Shipment
from trackchain.app.models.shipment_segment import ShipmentSegment
from trackchain.app.schemas.segment import (
    AreaResponse,
    CheckpointSummary,
    SegmentActions,
    SegmentResponse,
)
from trackchain.app.schemas.shipment import ShipmentItemResponse, ShipmentResponse


def segment_view(segment: ShipmentSegment, shipment: Shipment, org_id: Optional[str]) -> SegmentResponse:
    area = resolve_area(
        segment.start_checkpoint,
        segment.end_checkpoint,
        origin_text=segment.start_checkpoint.address if segment.start_checkpoint else None,
        destination_text=segment.end_checkpoint.address if segment.end_checkpoint else None,
    )
    actions = available_actions(
        segment,
        shipment.segments,
        shipment.destination_party_org_id,
        shipment.status,
        org_id,
    )
    return SegmentResponse(
        id=segment.id,
        shipment_id=segment.shipment_id,
        segment_order=segment.segment_order,
        status=segment.status,
        owner_org_id=segment.owner_org_id,
        start_checkpoint=CheckpointSummary.model_validate(segment.start_checkpoint),
        end_checkpoint=CheckpointSummary.model_validate(segment.end_checkpoint),
        expected_ship_date=segment.expected_ship_date,
        estimated_arrival_date=segment.estimated_arrival_date,
        time_tolerance=segment.time_tolerance,
        required_action=segment.required_action,
        rejection_reason=segment.rejection_reason,
        accepted_at=segment.accepted_at,
        taken_over_at=segment.taken_over_at,
        handed_over_at=segment.handed_over_at,
        completed_at=segment.completed_at,
        rejected_at=segment.rejected_at,
        shipment_status=shipment.status,
        supplier_tab=supplier_tab(segment.status, shipment.status),
        area=AreaResponse(country=area.country, state=area.state),
        area_tags=area_tags(segment.start_checkpoint, segment.end_checkpoint),
        actions=SegmentActions(**actions),
    )


def shipment_view(shipment: Shipment, org_id: Optional[str]) -> ShipmentResponse:
    return ShipmentResponse(
        id=shipment.id,
        manufacturer_org_id=shipment.manufacturer_org_id,
        destination_party_org_id=shipment.destination_party_org_id,
        status=shipment.status,
        route=route_label(shipment.segments),
        created_at=shipment.created_at,
        updated_at=shipment.updated_at,
        closed_at=shipment.closed_at,
        items=[_item_view(item) for item in shipment.items],
        segments=[segment_view(segment, shipment, org_id) for segment in shipment.segments],
    )


def segment_views(segments: List[ShipmentSegment], org_id: Optional[str]) -> List[SegmentResponse]:
    return [segment_view(segment, segment.shipment, org_id) for segment in segments]


def _item_view(item) -> ShipmentItemResponse:
    return ShipmentItemResponse(
        id=item.id,
        product_category_id=item.product_category_id,
        product_id=item.product_id,
        batch_id=item.batch_id,
        package_id=item.package_id,
        quantity=item.quantity,
        released=item.released,
    )
