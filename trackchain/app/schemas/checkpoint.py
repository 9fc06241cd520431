"""
Checkpoint Pydantic schemas.

Defines request and response models for the checkpoint registry.
Blank names and out-of-range coordinates are rejected by the registry
itself so that direct callers get the same ValidationError as HTTP callers.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class CheckpointCreate(BaseModel):
    """Schema for registering a checkpoint."""
    name: str = Field(..., max_length=200, description="Checkpoint name")
    address: str = Field(..., max_length=500, description="Full address")
    latitude: float = Field(..., description="Latitude coordinate")
    longitude: float = Field(..., description="Longitude coordinate")
    country: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    owner_org_id: Optional[str] = Field(None, max_length=64, description="Admins only: register on behalf of an organization")


class CheckpointResponse(BaseModel):
    """Schema for checkpoint response."""
    id: int
    owner_org_id: str
    name: str
    address: str
    city: Optional[str]
    state: Optional[str]
    country: Optional[str]
    latitude: float
    longitude: float
    created_at: datetime

    class Config:
        from_attributes = True


class CheckpointListResponse(BaseModel):
    """Schema for checkpoint list."""
    checkpoints: List[CheckpointResponse]
    total: int
