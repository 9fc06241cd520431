"""
Security guards for role-based and ownership-based access control.
"""

from typing import List
from fastapi import Depends
from trackchain.app.models.enums import OrgRole
from trackchain.app.core.dependencies import RequestContext, get_request_context
from trackchain.app.core.exceptions import InsufficientPermissionsError


def require_role(allowed_roles: List[OrgRole]):
    """
    Dependency factory for role-based access control.

    Admins always pass.

    Usage:
        @router.post("/batches")
        async def create_batch(ctx: RequestContext = Depends(require_role([OrgRole.MANUFACTURER]))):
            ...

    Raises:
        InsufficientPermissionsError (403) if the caller's role is not allowed
    """
    async def role_checker(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        if ctx.is_admin or ctx.role in allowed_roles:
            return ctx

        raise InsufficientPermissionsError(
            message=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}",
            details={"role": ctx.role.value}
        )

    return role_checker


def resolve_org_scope(ctx: RequestContext, requested_org_id: str = None) -> str:
    """
    Organization id a request may act for.

    Non-admin callers may only act for their own organization; admins may
    act on behalf of any organization they name.

    Raises:
        InsufficientPermissionsError if a non-admin names another organization
    """
    if requested_org_id is None or requested_org_id == ctx.org_id:
        return ctx.org_id

    if ctx.is_admin:
        return requested_org_id

    raise InsufficientPermissionsError(
        message="Access denied. You can only act for your own organization.",
        details={"requested_org_id": requested_org_id}
    )
