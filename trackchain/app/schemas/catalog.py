"""
Catalog Pydantic schemas.

Request and response models for product categories, products, batches and
packages.
"""

from pydantic import BaseModel, Field
from datetime import datetime, date
from typing import Optional, List
from trackchain.app.models.catalog_enums import BatchReleaseStatus, PackageStatus


class ProductCategoryCreate(BaseModel):
    """Schema for creating a product category."""
    name: str = Field(..., max_length=200)


class ProductCategoryUpdate(BaseModel):
    """Schema for renaming a product category."""
    name: str = Field(..., max_length=200)


class ProductCategoryResponse(BaseModel):
    id: str
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


class ProductCreate(BaseModel):
    """Schema for creating a product."""
    name: str = Field(..., max_length=200)
    category_id: str = Field(..., description="Product category ID")
    required_start_temp: Optional[float] = Field(None, description="Lowest allowed temperature (°C)")
    required_end_temp: Optional[float] = Field(None, description="Highest allowed temperature (°C)")
    handling_instructions: Optional[str] = Field(None, max_length=1000)


class ProductUpdate(BaseModel):
    """Schema for changing a product. Omitted fields keep their value."""
    name: Optional[str] = Field(None, max_length=200)
    category_id: Optional[str] = None
    required_start_temp: Optional[float] = None
    required_end_temp: Optional[float] = None
    handling_instructions: Optional[str] = Field(None, max_length=1000)


class ProductResponse(BaseModel):
    id: str
    category_id: str
    manufacturer_org_id: Optional[str]
    name: str
    required_start_temp: Optional[float]
    required_end_temp: Optional[float]
    handling_instructions: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class BatchCreate(BaseModel):
    """Schema for registering a production batch."""
    product_id: str
    facility: str = Field(..., max_length=200)
    production_start: datetime
    production_end: datetime
    quantity_produced: int
    release_status: BatchReleaseStatus = BatchReleaseStatus.PENDING_QC
    expiry_date: Optional[date] = None
    manufacturer_org_id: Optional[str] = Field(None, max_length=64, description="Admins only")


class BatchResponse(BaseModel):
    id: str
    product_id: str
    manufacturer_org_id: str
    facility: str
    production_start: datetime
    production_end: datetime
    quantity_produced: int
    release_status: BatchReleaseStatus
    expiry_date: Optional[date]
    created_at: datetime

    class Config:
        from_attributes = True


class PackageCreate(BaseModel):
    """Schema for creating a package within a batch."""
    batch_id: str
    package_code: str = Field(..., max_length=100)
    quantity: int
    unit: str = Field(default="units", max_length=50)
    notes: Optional[str] = Field(None, max_length=500)


class PackageUpdate(BaseModel):
    """Schema for correcting a package. Omitted fields keep their value."""
    quantity: Optional[int] = None
    unit: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=500)


class PackageResponse(BaseModel):
    id: str
    batch_id: str
    manufacturer_org_id: str
    package_code: str
    quantity: int
    quantity_available: int
    unit: str
    status: PackageStatus
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PackageListResponse(BaseModel):
    packages: List[PackageResponse]
    total: int
