"""
Admin API Endpoints.

Organization suspension and audit trail access (admin-only).
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from trackchain.app.db.session import get_db
from trackchain.app.models.enums import OrgRole
from trackchain.app.schemas.admin import (
    OrgActionRequest, AdminActionResponse, AuditTrailResponse, AuditLogResponse
)
from trackchain.app.core.dependencies import RequestContext
from trackchain.app.core.exceptions import ValidationError
from trackchain.app.core.guards import require_role
from trackchain.app.core.token_revocation import revoke_all_org_tokens, clear_org_token_revocation
from trackchain.app.services.audit import log_event, AuditAction, get_audit_trail

router = APIRouter(prefix="/admin", tags=["Admin"])

require_admin = require_role([OrgRole.ADMIN])


@router.post("/orgs/{org_id}/suspend", response_model=AdminActionResponse)
async def suspend_org(
    request: OrgActionRequest,
    org_id: str = Path(..., description="Organization ID"),
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Revoke every active token of an organization (admin-only).

    This immediately terminates all of its sessions.
    """
    if org_id == ctx.org_id:
        raise ValidationError("Cannot suspend your own organization", details={"org_id": org_id})

    await revoke_all_org_tokens(org_id)

    audit_log = await log_event(
        db=db,
        action=AuditAction.ORG_SUSPENDED,
        actor_org_id=ctx.org_id,
        actor_subject=ctx.subject,
        entity_type="organization",
        entity_id=org_id,
        metadata={"reason": request.reason} if request.reason else None
    )
    await db.commit()

    return AdminActionResponse(
        success=True,
        message=f"Organization '{org_id}' has been suspended",
        org_id=org_id,
        action=AuditAction.ORG_SUSPENDED,
        audit_log_id=audit_log.id
    )


@router.post("/orgs/{org_id}/reinstate", response_model=AdminActionResponse)
async def reinstate_org(
    request: OrgActionRequest,
    org_id: str = Path(..., description="Organization ID"),
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Lift an organization suspension (admin-only)."""
    await clear_org_token_revocation(org_id)

    audit_log = await log_event(
        db=db,
        action=AuditAction.ORG_REINSTATED,
        actor_org_id=ctx.org_id,
        actor_subject=ctx.subject,
        entity_type="organization",
        entity_id=org_id,
        metadata={"reason": request.reason} if request.reason else None
    )
    await db.commit()

    return AdminActionResponse(
        success=True,
        message=f"Organization '{org_id}' has been reinstated",
        org_id=org_id,
        action=AuditAction.ORG_REINSTATED,
        audit_log_id=audit_log.id
    )


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def list_audit_logs(
    entity_id: Optional[str] = Query(None, description="Filter by entity"),
    action: Optional[str] = Query(None, description="Filter by action"),
    actor_org_id: Optional[str] = Query(None, description="Filter by acting organization"),
    limit: int = Query(100, ge=1, le=500),
    ctx: RequestContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Audit trail, most recent first (admin-only)."""
    logs = await get_audit_trail(db, entity_id=entity_id, action=action, actor_org_id=actor_org_id, limit=limit)
    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
