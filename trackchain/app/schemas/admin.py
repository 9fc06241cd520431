"""
Admin Pydantic schemas.

Organization suspension and audit trail access.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class OrgActionRequest(BaseModel):
    """Schema for suspending or reinstating an organization."""
    reason: Optional[str] = Field(None, description="Reason (for audit log)")


class AdminActionResponse(BaseModel):
    """Schema for admin action response."""
    success: bool
    message: str
    org_id: str
    action: str
    audit_log_id: int


class AuditLogResponse(BaseModel):
    """Schema for audit log entry."""
    id: int
    actor_org_id: Optional[str]
    actor_subject: Optional[str]
    action: str
    entity_type: Optional[str]
    entity_id: Optional[str]
    meta_data: Optional[dict]
    correlation_id: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class AuditTrailResponse(BaseModel):
    """Schema for audit trail list."""
    logs: List[AuditLogResponse]
    total: int
