"""
Authentication API Endpoints.

Introspection and logout for bearer tokens issued by the identity service.
"""

from fastapi import APIRouter, Depends
from trackchain.app.schemas.auth import RequestContextResponse, LogoutResponse
from trackchain.app.core.dependencies import RequestContext, get_request_context
from trackchain.app.core.token_revocation import revoke_token

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get("/me", response_model=RequestContextResponse)
async def get_current_context(ctx: RequestContext = Depends(get_request_context)):
    """Organization, role and subject carried by the caller's token."""
    return RequestContextResponse(org_id=ctx.org_id, role=ctx.role, subject=ctx.subject)


@router.post("/logout", response_model=LogoutResponse)
async def logout(ctx: RequestContext = Depends(get_request_context)):
    """
    Revoke the caller's token.

    Subsequent requests with the same token are rejected with 401.
    """
    revoked = await revoke_token(ctx.token, ctx.org_id)
    return LogoutResponse(revoked=revoked)
