"""
Catalog API Endpoints.

Product categories, products, production batches and packages. Reads are
open to every authenticated organization; writes are manufacturer-only.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, status, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from trackchain.app.db.session import get_db
from trackchain.app.models.enums import OrgRole
from trackchain.app.models.catalog_enums import PackageStatus
from trackchain.app.schemas.catalog import (
    ProductCategoryCreate, ProductCategoryUpdate, ProductCategoryResponse,
    ProductCreate, ProductUpdate, ProductResponse,
    BatchCreate, BatchResponse,
    PackageCreate, PackageUpdate, PackageResponse, PackageListResponse
)
from trackchain.app.core.dependencies import RequestContext, get_request_context
from trackchain.app.core.guards import require_role, resolve_org_scope
from trackchain.app.domain.catalog.catalog_service import CatalogService

router = APIRouter(tags=["Catalog"])

manufacturer_only = require_role([OrgRole.MANUFACTURER])


# ---- Product categories ---------------------------------------------------

@router.post("/product-categories", response_model=ProductCategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_data: ProductCategoryCreate,
    ctx: RequestContext = Depends(manufacturer_only),
    db: AsyncSession = Depends(get_db)
):
    category = await CatalogService.create_category(
        db, category_data.name, actor_org_id=ctx.org_id, actor_subject=ctx.subject
    )
    await db.commit()
    return ProductCategoryResponse.model_validate(category)


@router.get("/product-categories", response_model=List[ProductCategoryResponse])
async def list_categories(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    categories = await CatalogService.list_categories(db)
    return [ProductCategoryResponse.model_validate(c) for c in categories]


@router.put("/product-categories/{category_id}", response_model=ProductCategoryResponse)
async def update_category(
    category_data: ProductCategoryUpdate,
    category_id: str = Path(..., description="Product category ID"),
    ctx: RequestContext = Depends(manufacturer_only),
    db: AsyncSession = Depends(get_db)
):
    category = await CatalogService.update_category(
        db, category_id, category_data.name, actor_org_id=ctx.org_id, actor_subject=ctx.subject
    )
    await db.commit()
    return ProductCategoryResponse.model_validate(category)


# ---- Products -------------------------------------------------------------

@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    ctx: RequestContext = Depends(manufacturer_only),
    db: AsyncSession = Depends(get_db)
):
    product = await CatalogService.create_product(
        db,
        category_id=product_data.category_id,
        name=product_data.name,
        manufacturer_org_id=ctx.org_id,
        required_start_temp=product_data.required_start_temp,
        required_end_temp=product_data.required_end_temp,
        handling_instructions=product_data.handling_instructions,
        actor_subject=ctx.subject,
    )
    await db.commit()
    return ProductResponse.model_validate(product)


@router.get("/products", response_model=List[ProductResponse])
async def list_products(
    category_id: Optional[str] = Query(None, description="Filter by category"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    products = await CatalogService.list_products(db, category_id=category_id)
    return [ProductResponse.model_validate(p) for p in products]


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str = Path(..., description="Product ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    product = await CatalogService.get_product(db, product_id)
    return ProductResponse.model_validate(product)


@router.put("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_data: ProductUpdate,
    product_id: str = Path(..., description="Product ID"),
    ctx: RequestContext = Depends(manufacturer_only),
    db: AsyncSession = Depends(get_db)
):
    """Change a product (its manufacturer only); omitted fields are kept."""
    product = await CatalogService.update_product(
        db,
        product_id,
        actor_org_id=ctx.org_id,
        is_admin=ctx.is_admin,
        name=product_data.name,
        category_id=product_data.category_id,
        required_start_temp=product_data.required_start_temp,
        required_end_temp=product_data.required_end_temp,
        handling_instructions=product_data.handling_instructions,
        actor_subject=ctx.subject,
    )
    await db.commit()
    return ProductResponse.model_validate(product)


# ---- Batches --------------------------------------------------------------

@router.post("/batches", response_model=BatchResponse, status_code=status.HTTP_201_CREATED)
async def create_batch(
    batch_data: BatchCreate,
    ctx: RequestContext = Depends(manufacturer_only),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a production batch (Manufacturer only).

    Validates:
    - Product exists
    - production_start is not after production_end
    - quantity_produced is positive
    """
    batch = await CatalogService.create_batch(
        db,
        product_id=batch_data.product_id,
        manufacturer_org_id=resolve_org_scope(ctx, batch_data.manufacturer_org_id),
        facility=batch_data.facility,
        production_start=batch_data.production_start,
        production_end=batch_data.production_end,
        quantity_produced=batch_data.quantity_produced,
        release_status=batch_data.release_status,
        expiry_date=batch_data.expiry_date,
        actor_subject=ctx.subject,
    )
    await db.commit()
    return BatchResponse.model_validate(batch)


@router.get("/batches", response_model=List[BatchResponse])
async def list_batches(
    product_id: Optional[str] = Query(None, description="Filter by product"),
    manufacturer_uuid: Optional[str] = Query(None, alias="manufacturerUUID", description="Filter by manufacturer"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    batches = await CatalogService.list_batches(db, product_id=product_id, manufacturer_org_id=manufacturer_uuid)
    return [BatchResponse.model_validate(b) for b in batches]


@router.get("/batches/{batch_id}", response_model=BatchResponse)
async def get_batch(
    batch_id: str = Path(..., description="Batch ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    batch = await CatalogService.get_batch(db, batch_id)
    return BatchResponse.model_validate(batch)


@router.get("/batches/{batch_id}/packages", response_model=PackageListResponse)
async def list_batch_packages(
    batch_id: str = Path(..., description="Batch ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    await CatalogService.get_batch(db, batch_id)
    packages = await CatalogService.list_packages(db, batch_id=batch_id)
    return PackageListResponse(
        packages=[PackageResponse.model_validate(p) for p in packages],
        total=len(packages)
    )


# ---- Packages -------------------------------------------------------------

@router.post("/packages", response_model=PackageResponse, status_code=status.HTTP_201_CREATED)
async def create_package(
    package_data: PackageCreate,
    ctx: RequestContext = Depends(manufacturer_only),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a package in a batch (Manufacturer only).

    The whole quantity starts available for shipments.
    """
    package = await CatalogService.create_package(
        db,
        batch_id=package_data.batch_id,
        package_code=package_data.package_code,
        quantity=package_data.quantity,
        actor_org_id=ctx.org_id,
        is_admin=ctx.is_admin,
        unit=package_data.unit,
        notes=package_data.notes,
        actor_subject=ctx.subject,
    )
    await db.commit()
    return PackageResponse.model_validate(package)


@router.get("/packages", response_model=PackageListResponse)
async def list_packages(
    batch_id: Optional[str] = Query(None, description="Filter by batch"),
    package_status: Optional[PackageStatus] = Query(None, alias="status", description="Filter by status"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    packages = await CatalogService.list_packages(db, batch_id=batch_id, status=package_status)
    return PackageListResponse(
        packages=[PackageResponse.model_validate(p) for p in packages],
        total=len(packages)
    )


@router.get("/packages/manufacturer/{manufacturer_uuid}", response_model=PackageListResponse)
async def list_manufacturer_packages(
    manufacturer_uuid: str = Path(..., description="Manufacturer organization ID"),
    package_status: Optional[PackageStatus] = Query(None, alias="status", description="Filter by status"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    packages = await CatalogService.list_packages(
        db, manufacturer_org_id=manufacturer_uuid, status=package_status
    )
    return PackageListResponse(
        packages=[PackageResponse.model_validate(p) for p in packages],
        total=len(packages)
    )


@router.get("/packages/{package_id}", response_model=PackageResponse)
async def get_package(
    package_id: str = Path(..., description="Package ID"),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    package = await CatalogService.get_package(db, package_id)
    return PackageResponse.model_validate(package)


@router.put("/packages/{package_id}", response_model=PackageResponse)
async def update_package(
    package_data: PackageUpdate,
    package_id: str = Path(..., description="Package ID"),
    ctx: RequestContext = Depends(manufacturer_only),
    db: AsyncSession = Depends(get_db)
):
    """
    Correct a package (its manufacturer only).

    A new quantity may not drop below the units already reserved or shipped;
    `quantity_available` follows the change.
    """
    await CatalogService.update_package(
        db,
        package_id,
        actor_org_id=ctx.org_id,
        is_admin=ctx.is_admin,
        quantity=package_data.quantity,
        unit=package_data.unit,
        notes=package_data.notes,
        actor_subject=ctx.subject,
    )
    await db.commit()
    package = await CatalogService.get_package(db, package_id)
    return PackageResponse.model_validate(package)
