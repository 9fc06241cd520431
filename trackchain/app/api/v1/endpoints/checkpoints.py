"""
Checkpoint Registry API Endpoints.

Any organization may register checkpoints it operates; the route planner
uses checkpoint ownership to decide who is responsible for each leg.
"""

from fastapi import APIRouter, Depends, status, Path
from sqlalchemy.ext.asyncio import AsyncSession
from trackchain.app.db.session import get_db
from trackchain.app.schemas.checkpoint import CheckpointCreate, CheckpointResponse, CheckpointListResponse
from trackchain.app.core.dependencies import RequestContext, get_request_context
from trackchain.app.core.guards import resolve_org_scope
from trackchain.app.domain.registry.checkpoint_registry import CheckpointRegistry

router = APIRouter(prefix="/checkpoints", tags=["Checkpoints"])


@router.post("", response_model=CheckpointResponse, status_code=status.HTTP_201_CREATED)
async def create_checkpoint(
    checkpoint_data: CheckpointCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a checkpoint owned by the calling organization.

    Admins may register on behalf of another organization via `owner_org_id`.
    """
    owner_org_id = resolve_org_scope(ctx, checkpoint_data.owner_org_id)

    checkpoint = await CheckpointRegistry.create(
        db,
        owner_org_id=owner_org_id,
        name=checkpoint_data.name,
        address=checkpoint_data.address,
        latitude=checkpoint_data.latitude,
        longitude=checkpoint_data.longitude,
        city=checkpoint_data.city,
        state=checkpoint_data.state,
        country=checkpoint_data.country,
        actor_subject=ctx.subject,
    )
    await db.commit()

    return CheckpointResponse.model_validate(checkpoint)


@router.get("", response_model=CheckpointListResponse)
async def list_checkpoints(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """List every registered checkpoint (route planning needs all of them)."""
    checkpoints = await CheckpointRegistry.list_all(db)
    return CheckpointListResponse(
        checkpoints=[CheckpointResponse.model_validate(c) for c in checkpoints],
        total=len(checkpoints)
    )


@router.get("/owner/{owner_uuid}", response_model=CheckpointListResponse)
async def list_checkpoints_by_owner(
    owner_uuid: str = Path(..., description="Owner organization ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    checkpoints = await CheckpointRegistry.list_by_owner(db, owner_uuid)
    return CheckpointListResponse(
        checkpoints=[CheckpointResponse.model_validate(c) for c in checkpoints],
        total=len(checkpoints)
    )


@router.get("/{checkpoint_id}", response_model=CheckpointResponse)
async def get_checkpoint(
    checkpoint_id: int = Path(..., description="Checkpoint ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    checkpoint = await CheckpointRegistry.get(db, checkpoint_id)
    return CheckpointResponse.model_validate(checkpoint)
