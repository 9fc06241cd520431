"""
Shipment Segment (Custody) API Endpoints.

Segment owners accept, take over and hand over their legs; the destination
party confirms delivery of the final leg. Every transition is validated by
the custody state machine and committed atomically.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Path, Query, Body
from sqlalchemy.ext.asyncio import AsyncSession
from trackchain.app.db.session import get_db
from trackchain.app.models.shipment_enums import SegmentStatus, SupplierTab
from trackchain.app.schemas.segment import LocationRecord, RejectRequest, SegmentResponse, SegmentListResponse
from trackchain.app.core.dependencies import RequestContext, get_request_context
from trackchain.app.core.exceptions import InsufficientPermissionsError
from trackchain.app.core.guards import resolve_org_scope
from trackchain.app.domain.area.area_resolver import matches_area
from trackchain.app.domain.custody.state_machine import CustodyStateMachine
from trackchain.app.domain.shipments.planner import ShipmentPlanner, can_view
from trackchain.app.services.shipment_views import segment_view, segment_views

router = APIRouter(prefix="/shipment-segments", tags=["Shipment Segments"])


async def _segment_response(db: AsyncSession, segment_id: str, org_id: str) -> SegmentResponse:
    segment = await ShipmentPlanner.get_segment(db, segment_id)
    return segment_view(segment, segment.shipment, org_id)


@router.get("", response_model=SegmentListResponse)
async def list_my_segments(
    tab: Optional[SupplierTab] = Query(None, alias="status", description="Dashboard bucket"),
    area: Optional[str] = Query(None, description="Case-insensitive area search"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """Segments owned by the caller, grouped by dashboard bucket and searchable by area."""
    segments = await ShipmentPlanner.segments_for_owner(db, ctx.org_id)
    views = [
        view for view in segment_views(segments, ctx.org_id)
        if (tab is None or view.supplier_tab == tab) and matches_area(view.area_tags, area)
    ]
    return SegmentListResponse(segments=views, total=len(views))


@router.get("/pending", response_model=SegmentListResponse)
async def list_pending_segments(
    owner_uuid: Optional[str] = Query(None, alias="ownerUUID", description="Owner organization ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """Segments waiting for the owner's acceptance."""
    owner_org_id = resolve_org_scope(ctx, owner_uuid)
    segments = await ShipmentPlanner.segments_for_owner(
        db, owner_org_id, status=SegmentStatus.PENDING_ACCEPTANCE
    )
    return SegmentListResponse(segments=segment_views(segments, ctx.org_id), total=len(segments))


@router.get("/{segment_id}", response_model=SegmentResponse)
async def get_segment(
    segment_id: str = Path(..., description="Segment ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    segment = await ShipmentPlanner.get_segment(db, segment_id)
    if not ctx.is_admin and not can_view(segment.shipment, ctx.org_id):
        raise InsufficientPermissionsError(
            message="Access denied. Your organization is not a party to this shipment.",
            details={"segment_id": segment_id}
        )
    return segment_view(segment, segment.shipment, ctx.org_id)


@router.post("/accept/{segment_id}", response_model=SegmentResponse)
async def accept_segment(
    segment_id: str = Path(..., description="Segment ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Accept a pending segment (segment owner only).

    Activates the next segment and acknowledges a handed-over previous one.
    """
    await CustodyStateMachine.accept(db, segment_id, ctx.org_id, actor_subject=ctx.subject)
    await db.commit()
    return await _segment_response(db, segment_id, ctx.org_id)


@router.post("/takeover/{segment_id}", response_model=SegmentResponse)
async def take_over_segment(
    segment_id: str = Path(..., description="Segment ID"),
    location: LocationRecord = Body(...),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """Take physical custody of the goods (segment owner only)."""
    await CustodyStateMachine.take_over(
        db, segment_id, ctx.org_id, location.latitude, location.longitude, actor_subject=ctx.subject
    )
    await db.commit()
    return await _segment_response(db, segment_id, ctx.org_id)


@router.post("/handover/{segment_id}", response_model=SegmentResponse)
async def hand_over_segment(
    segment_id: str = Path(..., description="Segment ID"),
    location: LocationRecord = Body(...),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """Release the goods at the end checkpoint (segment owner only)."""
    await CustodyStateMachine.handover(
        db, segment_id, ctx.org_id, location.latitude, location.longitude, actor_subject=ctx.subject
    )
    await db.commit()
    return await _segment_response(db, segment_id, ctx.org_id)


@router.post("/deliver/{segment_id}", response_model=SegmentResponse)
async def confirm_delivery(
    segment_id: str = Path(..., description="Segment ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """Confirm receipt of the final segment (destination party only)."""
    await CustodyStateMachine.confirm_delivery(db, segment_id, ctx.org_id, actor_subject=ctx.subject)
    await db.commit()
    return await _segment_response(db, segment_id, ctx.org_id)


@router.post("/reject/{segment_id}", response_model=SegmentResponse)
async def reject_segment(
    segment_id: str = Path(..., description="Segment ID"),
    rejection: RejectRequest = Body(...),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Reject a pending segment (segment owner only).

    The shipment becomes REJECTED and its reserved stock is returned.
    """
    await CustodyStateMachine.reject(db, segment_id, ctx.org_id, rejection.reason, actor_subject=ctx.subject)
    await db.commit()
    return await _segment_response(db, segment_id, ctx.org_id)
