"""
Authentication dependencies for FastAPI.

Every call carries a bearer token from the identity service. The decoded
token becomes an explicit, immutable RequestContext handed to endpoints;
nothing about the caller is kept in process-wide state.
"""

from dataclasses import dataclass
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from trackchain.app.core.jwt import decode_access_token, missing_claims
from trackchain.app.core.token_revocation import is_token_revoked, are_org_tokens_revoked
from trackchain.app.models.enums import OrgRole

# HTTP Bearer security scheme
security = HTTPBearer()


@dataclass(frozen=True)
class RequestContext:
    """Identity of the calling organization for a single request."""
    org_id: str
    role: OrgRole
    subject: str
    token: str

    @property
    def is_admin(self) -> bool:
        return self.role == OrgRole.ADMIN


async def get_request_context(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> RequestContext:
    """
    FastAPI dependency resolving the caller's organization.

    Checks:
    1. Validates JWT token signature and expiry
    2. Checks if token has been explicitly revoked
    3. Checks if all tokens of the organization have been revoked

    Raises:
        HTTPException: 401 if authentication fails for any reason
    """
    token = credentials.credentials

    # 1. Decode and validate JWT
    payload = decode_access_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    missing = missing_claims(payload)
    if missing:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token is missing claims: {', '.join(missing)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        role = OrgRole(payload["role"])
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid role in token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 2. Check if this specific token has been revoked
    if await is_token_revoked(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 3. Check if the organization was suspended
    org_id = str(payload["org_id"])
    if await are_org_tokens_revoked(org_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Organization access has been revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return RequestContext(
        org_id=org_id,
        role=role,
        subject=str(payload["sub"]),
        token=token,
    )
