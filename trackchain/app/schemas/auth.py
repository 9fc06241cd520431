"""
Authentication schemas.

Tokens are issued by the identity service; this service only introspects
and revokes them.
"""

from pydantic import BaseModel
from trackchain.app.models.enums import OrgRole


class RequestContextResponse(BaseModel):
    """Identity resolved from the caller's bearer token."""
    org_id: str
    role: OrgRole
    subject: str


class LogoutResponse(BaseModel):
    revoked: bool
