"""
Shipment API Endpoints.

Manufacturers plan shipments (items reserved from packages plus an ordered
route of checkpoint-to-checkpoint segments), re-plan them while nothing
has moved, and close them once delivered.
"""

from typing import Optional
from fastapi import APIRouter, Depends, status, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from trackchain.app.db.session import get_db
from trackchain.app.models.enums import OrgRole
from trackchain.app.models.shipment_enums import ShipmentStatus
from trackchain.app.schemas.shipment import ShipmentCreate, ShipmentUpdate, ShipmentResponse, ShipmentListResponse
from trackchain.app.schemas.segment import SegmentListResponse
from trackchain.app.core.config import settings
from trackchain.app.core.dependencies import RequestContext, get_request_context
from trackchain.app.core.exceptions import InsufficientPermissionsError
from trackchain.app.core.guards import require_role, resolve_org_scope
from trackchain.app.domain.shipments.planner import ShipmentPlanner, can_view
from trackchain.app.services.shipment_views import shipment_view, segment_views

router = APIRouter(prefix="/shipments", tags=["Shipments"])

manufacturer_only = require_role([OrgRole.MANUFACTURER])


@router.post("", response_model=ShipmentResponse, status_code=status.HTTP_201_CREATED)
async def create_shipment(
    shipment_data: ShipmentCreate,
    ctx: RequestContext = Depends(manufacturer_only),
    db: AsyncSession = Depends(get_db)
):
    """
    Plan a shipment (Manufacturer only).

    Validates:
    - Items reference existing packages along a consistent catalog path
    - Route is non-empty, ordered 1..N and uses existing checkpoints
    - Every package has enough quantity available (409 otherwise)

    Actions:
    - Reserves package quantities
    - First segment becomes PENDING_ACCEPTANCE
    """
    manufacturer_org_id = resolve_org_scope(ctx, shipment_data.manufacturer_org_id)

    shipment = await ShipmentPlanner.create_shipment(
        db,
        manufacturer_org_id=manufacturer_org_id,
        destination_org_id=shipment_data.destination_party_org_id,
        items=shipment_data.items,
        segments=shipment_data.segments,
        actor_subject=ctx.subject,
    )
    await db.commit()

    shipment = await ShipmentPlanner.get_shipment(db, shipment.id)
    return shipment_view(shipment, ctx.org_id)


@router.get("", response_model=ShipmentListResponse)
async def list_shipments(
    manufacturer_uuid: Optional[str] = Query(None, alias="manufacturerUUID", description="Filter by manufacturer"),
    shipment_status: Optional[ShipmentStatus] = Query(None, alias="status", description="Filter by status"),
    cursor: Optional[str] = Query(None, description="Opaque cursor from the previous page"),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    List shipments newest first.

    Non-admin callers only see shipments they manufactured.
    """
    if ctx.is_admin:
        manufacturer_org_id = manufacturer_uuid
    else:
        manufacturer_org_id = resolve_org_scope(ctx, manufacturer_uuid)

    shipments, next_cursor, has_more = await ShipmentPlanner.list_shipments(
        db,
        manufacturer_org_id=manufacturer_org_id,
        status=shipment_status,
        cursor=cursor,
        limit=limit,
    )
    return ShipmentListResponse(
        shipments=[shipment_view(s, ctx.org_id) for s in shipments],
        cursor=next_cursor,
        has_more=has_more,
    )


@router.get("/incoming/{owner_uuid}", response_model=SegmentListResponse)
async def list_incoming(
    owner_uuid: str = Path(..., description="Owner organization ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """Every segment the organization is responsible for."""
    owner_org_id = resolve_org_scope(ctx, owner_uuid)
    segments = await ShipmentPlanner.segments_for_owner(db, owner_org_id)
    return SegmentListResponse(segments=segment_views(segments, ctx.org_id), total=len(segments))


@router.get("/{shipment_id}", response_model=ShipmentResponse)
async def get_shipment(
    shipment_id: str = Path(..., description="Shipment ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """Shipment with items and route; visible to the parties involved."""
    shipment = await ShipmentPlanner.get_shipment(db, shipment_id)
    if not ctx.is_admin and not can_view(shipment, ctx.org_id):
        raise InsufficientPermissionsError(
            message="Access denied. Your organization is not a party to this shipment.",
            details={"shipment_id": shipment_id}
        )
    return shipment_view(shipment, ctx.org_id)


@router.put("/{shipment_id}", response_model=ShipmentResponse)
async def update_shipment(
    shipment_data: ShipmentUpdate,
    shipment_id: str = Path(..., description="Shipment ID"),
    ctx: RequestContext = Depends(manufacturer_only),
    db: AsyncSession = Depends(get_db)
):
    """
    Re-plan a shipment (Manufacturer only).

    Only allowed while the shipment is PREPARING; returns 409 afterwards.
    """
    await ShipmentPlanner.update_shipment(
        db,
        shipment_id,
        actor_org_id=ctx.org_id,
        is_admin=ctx.is_admin,
        destination_org_id=shipment_data.destination_party_org_id,
        segments=shipment_data.segments,
        actor_subject=ctx.subject,
    )
    await db.commit()

    shipment = await ShipmentPlanner.get_shipment(db, shipment_id)
    return shipment_view(shipment, ctx.org_id)


@router.post("/{shipment_id}/close", response_model=ShipmentResponse)
async def close_shipment(
    shipment_id: str = Path(..., description="Shipment ID"),
    ctx: RequestContext = Depends(manufacturer_only),
    db: AsyncSession = Depends(get_db)
):
    """Close a DELIVERED shipment (Manufacturer only)."""
    await ShipmentPlanner.close_shipment(
        db, shipment_id, actor_org_id=ctx.org_id, is_admin=ctx.is_admin, actor_subject=ctx.subject
    )
    await db.commit()

    shipment = await ShipmentPlanner.get_shipment(db, shipment_id)
    return shipment_view(shipment, ctx.org_id)
