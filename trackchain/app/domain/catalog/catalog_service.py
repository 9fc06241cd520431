"""
Catalog Service (Domain Logic).

Manages the Category → Product → Batch → Package hierarchy. Packages are
the unit of inventory: `quantity_available` is what shipments reserve from.
"""

import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from trackchain.app.core.exceptions import ValidationError, NotFoundError, InsufficientPermissionsError
from trackchain.app.models.product_category import ProductCategory
from trackchain.app.models.product import Product
from trackchain.app.models.batch import Batch
from trackchain.app.models.package import Package
from trackchain.app.models.catalog_enums import BatchReleaseStatus, PackageStatus
from trackchain.app.domain.shipments import inventory
from trackchain.app.services.audit import log_event, AuditAction

logger = logging.getLogger(__name__)


def _require_text(value: Optional[str], name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{name} is required", details={"field": name})
    return str(value).strip()


def _require_positive(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} must be a positive integer", details={"field": name, "value": value})
    return value


class CatalogService:

    # ---- Categories -------------------------------------------------------

    @staticmethod
    async def create_category(
        db: AsyncSession,
        name: str,
        actor_org_id: Optional[str] = None,
        actor_subject: Optional[str] = None,
    ) -> ProductCategory:
        name = _require_text(name, "name")

        existing = await db.execute(select(ProductCategory).where(ProductCategory.name == name))
        if existing.scalar_one_or_none():
            raise ValidationError(f"Product category '{name}' already exists", details={"field": "name"})

        category = ProductCategory(name=name)
        db.add(category)
        await db.flush()

        await log_event(
            db=db,
            action=AuditAction.CATEGORY_CREATED,
            actor_org_id=actor_org_id,
            actor_subject=actor_subject,
            entity_type="product_category",
            entity_id=category.id,
            metadata={"name": name}
        )
        return category

    @staticmethod
    async def get_category(db: AsyncSession, category_id: str) -> ProductCategory:
        category = await db.get(ProductCategory, category_id)
        if category is None:
            raise NotFoundError("Product category", category_id)
        return category

    @staticmethod
    async def list_categories(db: AsyncSession) -> List[ProductCategory]:
        result = await db.execute(select(ProductCategory).order_by(ProductCategory.name))
        return list(result.scalars().all())

    @staticmethod
    async def update_category(
        db: AsyncSession,
        category_id: str,
        name: str,
        actor_org_id: Optional[str] = None,
        actor_subject: Optional[str] = None,
    ) -> ProductCategory:
        """Rename a category; names stay unique."""
        category = await CatalogService.get_category(db, category_id)
        name = _require_text(name, "name")

        existing = await db.execute(
            select(ProductCategory).where(ProductCategory.name == name, ProductCategory.id != category_id)
        )
        if existing.scalar_one_or_none():
            raise ValidationError(f"Product category '{name}' already exists", details={"field": "name"})

        previous = category.name
        category.name = name
        await db.flush()

        await log_event(
            db=db,
            action=AuditAction.CATEGORY_UPDATED,
            actor_org_id=actor_org_id,
            actor_subject=actor_subject,
            entity_type="product_category",
            entity_id=category.id,
            metadata={"from": previous, "to": name}
        )
        return category

    # ---- Products ---------------------------------------------------------

    @staticmethod
    async def create_product(
        db: AsyncSession,
        category_id: str,
        name: str,
        manufacturer_org_id: Optional[str] = None,
        required_start_temp: Optional[float] = None,
        required_end_temp: Optional[float] = None,
        handling_instructions: Optional[str] = None,
        actor_subject: Optional[str] = None,
    ) -> Product:
        """
        Create a product under an existing category.

        Raises:
            NotFoundError: unknown category
            ValidationError: blank name or an inverted temperature range
        """
        name = _require_text(name, "name")
        await CatalogService.get_category(db, category_id)

        if (
            required_start_temp is not None
            and required_end_temp is not None
            and required_start_temp > required_end_temp
        ):
            raise ValidationError(
                "required_start_temp must not exceed required_end_temp",
                details={"required_start_temp": required_start_temp, "required_end_temp": required_end_temp}
            )

        product = Product(
            category_id=category_id,
            manufacturer_org_id=manufacturer_org_id,
            name=name,
            required_start_temp=required_start_temp,
            required_end_temp=required_end_temp,
            handling_instructions=handling_instructions,
        )
        db.add(product)
        await db.flush()

        await log_event(
            db=db,
            action=AuditAction.PRODUCT_CREATED,
            actor_org_id=manufacturer_org_id,
            actor_subject=actor_subject,
            entity_type="product",
            entity_id=product.id,
            metadata={"name": name, "category_id": category_id}
        )
        return product

    @staticmethod
    async def get_product(db: AsyncSession, product_id: str) -> Product:
        product = await db.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    @staticmethod
    async def list_products(db: AsyncSession, category_id: Optional[str] = None) -> List[Product]:
        query = select(Product).order_by(Product.name, Product.id)
        if category_id:
            query = query.where(Product.category_id == category_id)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def update_product(
        db: AsyncSession,
        product_id: str,
        actor_org_id: str,
        is_admin: bool = False,
        name: Optional[str] = None,
        category_id: Optional[str] = None,
        required_start_temp: Optional[float] = None,
        required_end_temp: Optional[float] = None,
        handling_instructions: Optional[str] = None,
        actor_subject: Optional[str] = None,
    ) -> Product:
        """
        Change a product's descriptive fields.

        Omitted fields keep their value; the merged temperature range must
        still be ordered.

        Raises:
            NotFoundError: unknown product or category
            ValidationError: blank name or an inverted temperature range
            InsufficientPermissionsError: caller did not create the product
        """
        product = await CatalogService.get_product(db, product_id)
        if not is_admin and product.manufacturer_org_id not in (None, actor_org_id):
            raise InsufficientPermissionsError(
                message="Only the product's manufacturer can change it",
                details={"product_id": product_id}
            )

        if name is not None:
            product.name = _require_text(name, "name")
        if category_id is not None:
            await CatalogService.get_category(db, category_id)
            product.category_id = category_id
        if required_start_temp is not None:
            product.required_start_temp = required_start_temp
        if required_end_temp is not None:
            product.required_end_temp = required_end_temp
        if handling_instructions is not None:
            product.handling_instructions = handling_instructions

        if (
            product.required_start_temp is not None
            and product.required_end_temp is not None
            and product.required_start_temp > product.required_end_temp
        ):
            raise ValidationError(
                "required_start_temp must not exceed required_end_temp",
                details={
                    "required_start_temp": product.required_start_temp,
                    "required_end_temp": product.required_end_temp
                }
            )

        await db.flush()

        await log_event(
            db=db,
            action=AuditAction.PRODUCT_UPDATED,
            actor_org_id=actor_org_id,
            actor_subject=actor_subject,
            entity_type="product",
            entity_id=product.id,
            metadata={"name": product.name, "category_id": product.category_id}
        )
        return product

    # ---- Batches ----------------------------------------------------------

    @staticmethod
    async def create_batch(
        db: AsyncSession,
        product_id: str,
        manufacturer_org_id: str,
        facility: str,
        production_start: datetime,
        production_end: datetime,
        quantity_produced: int,
        release_status: BatchReleaseStatus = BatchReleaseStatus.PENDING_QC,
        expiry_date: Optional[date] = None,
        actor_subject: Optional[str] = None,
    ) -> Batch:
        """
        Register a production batch of an existing product.

        Raises:
            NotFoundError: unknown product
            ValidationError: production_start after production_end,
                non-positive quantity_produced or blank facility
        """
        facility = _require_text(facility, "facility")
        _require_positive(quantity_produced, "quantity_produced")
        await CatalogService.get_product(db, product_id)

        if production_start is None or production_end is None:
            raise ValidationError("production_start and production_end are required")
        if production_start > production_end:
            raise ValidationError(
                "production_start must not be after production_end",
                details={
                    "production_start": production_start.isoformat(),
                    "production_end": production_end.isoformat()
                }
            )

        batch = Batch(
            product_id=product_id,
            manufacturer_org_id=_require_text(manufacturer_org_id, "manufacturer_org_id"),
            facility=facility,
            production_start=production_start,
            production_end=production_end,
            quantity_produced=quantity_produced,
            release_status=release_status,
            expiry_date=expiry_date,
        )
        db.add(batch)
        await db.flush()

        await log_event(
            db=db,
            action=AuditAction.BATCH_CREATED,
            actor_org_id=manufacturer_org_id,
            actor_subject=actor_subject,
            entity_type="batch",
            entity_id=batch.id,
            metadata={"product_id": product_id, "quantity_produced": quantity_produced}
        )
        return batch

    @staticmethod
    async def get_batch(db: AsyncSession, batch_id: str) -> Batch:
        batch = await db.get(Batch, batch_id)
        if batch is None:
            raise NotFoundError("Batch", batch_id)
        return batch

    @staticmethod
    async def list_batches(
        db: AsyncSession,
        product_id: Optional[str] = None,
        manufacturer_org_id: Optional[str] = None,
    ) -> List[Batch]:
        query = select(Batch).order_by(Batch.created_at.desc(), Batch.id)
        if product_id:
            query = query.where(Batch.product_id == product_id)
        if manufacturer_org_id:
            query = query.where(Batch.manufacturer_org_id == manufacturer_org_id)
        result = await db.execute(query)
        return list(result.scalars().all())

    # ---- Packages ---------------------------------------------------------

    @staticmethod
    async def create_package(
        db: AsyncSession,
        batch_id: str,
        package_code: str,
        quantity: int,
        actor_org_id: str,
        is_admin: bool = False,
        unit: str = "units",
        notes: Optional[str] = None,
        actor_subject: Optional[str] = None,
    ) -> Package:
        """
        Create a package in a batch with its full quantity available.

        Only the batch's manufacturer may add packages to it.

        Raises:
            NotFoundError: unknown batch
            ValidationError: non-positive quantity or duplicate package code
            InsufficientPermissionsError: caller does not own the batch
        """
        _require_positive(quantity, "quantity")
        package_code = _require_text(package_code, "package_code")
        batch = await CatalogService.get_batch(db, batch_id)

        if not is_admin and batch.manufacturer_org_id != actor_org_id:
            raise InsufficientPermissionsError(
                message="Only the batch manufacturer can add packages",
                details={"batch_id": batch_id}
            )

        existing = await db.execute(select(Package).where(Package.package_code == package_code))
        if existing.scalar_one_or_none():
            raise ValidationError(
                f"Package with code '{package_code}' already exists",
                details={"field": "package_code"}
            )

        package = Package(
            batch_id=batch.id,
            manufacturer_org_id=batch.manufacturer_org_id,
            package_code=package_code,
            quantity=quantity,
            quantity_available=quantity,
            unit=unit or "units",
            notes=notes,
            status=PackageStatus.PACKAGE_READY_FOR_SHIPMENT,
        )
        db.add(package)
        await db.flush()

        await log_event(
            db=db,
            action=AuditAction.PACKAGE_CREATED,
            actor_org_id=actor_org_id,
            actor_subject=actor_subject,
            entity_type="package",
            entity_id=package.id,
            metadata={"batch_id": batch.id, "package_code": package_code, "quantity": quantity}
        )

        logger.info("Package %s created in batch %s with quantity %s", package.id, batch.id, quantity)
        return package

    @staticmethod
    async def get_package(db: AsyncSession, package_id: str) -> Package:
        package = await db.get(Package, package_id, populate_existing=True)
        if package is None:
            raise NotFoundError("Package", package_id)
        return package

    @staticmethod
    async def update_package(
        db: AsyncSession,
        package_id: str,
        actor_org_id: str,
        is_admin: bool = False,
        quantity: Optional[int] = None,
        unit: Optional[str] = None,
        notes: Optional[str] = None,
        actor_subject: Optional[str] = None,
    ) -> Package:
        """
        Correct a package's quantity, unit or notes.

        A new quantity keeps every reservation: it may not drop below the
        units already reserved or shipped, and `quantity_available` moves
        by the same delta. The check and the write are one conditional UPDATE.

        Raises:
            NotFoundError: unknown package
            ValidationError: non-positive quantity or fewer units than reserved
            InsufficientPermissionsError: caller does not own the package
        """
        package = await CatalogService.get_package(db, package_id)
        if not is_admin and package.manufacturer_org_id != actor_org_id:
            raise InsufficientPermissionsError(
                message="Only the package manufacturer can change it",
                details={"package_id": package_id}
            )

        metadata = {}
        if quantity is not None:
            _require_positive(quantity, "quantity")
            result = await db.execute(
                update(Package)
                .where(Package.id == package_id, Package.quantity - Package.quantity_available <= quantity)
                .values(
                    quantity_available=Package.quantity_available + (quantity - Package.quantity),
                    quantity=quantity
                )
                .execution_options(synchronize_session="fetch")
            )
            if result.rowcount != 1:
                package = await CatalogService.get_package(db, package_id)
                reserved = package.quantity - package.quantity_available
                raise ValidationError(
                    f"quantity cannot drop below the {reserved} units already reserved or shipped",
                    details={"field": "quantity", "value": quantity, "reserved": reserved}
                )
            await inventory.refresh_status(db, [package_id])
            metadata["quantity"] = quantity

        if unit is not None:
            package.unit = _require_text(unit, "unit")
            metadata["unit"] = package.unit
        if notes is not None:
            package.notes = notes
        await db.flush()

        await log_event(
            db=db,
            action=AuditAction.PACKAGE_UPDATED,
            actor_org_id=actor_org_id,
            actor_subject=actor_subject,
            entity_type="package",
            entity_id=package.id,
            metadata=metadata
        )
        logger.info("Package %s updated by %s: %s", package.id, actor_org_id, metadata)
        return await CatalogService.get_package(db, package_id)

    @staticmethod
    async def list_packages(
        db: AsyncSession,
        batch_id: Optional[str] = None,
        manufacturer_org_id: Optional[str] = None,
        status: Optional[PackageStatus] = None,
    ) -> List[Package]:
        """List packages with their live `quantity_available`."""
        query = (
            select(Package)
            .order_by(Package.package_code)
            .execution_options(populate_existing=True)
        )
        if batch_id:
            query = query.where(Package.batch_id == batch_id)
        if manufacturer_org_id:
            query = query.where(Package.manufacturer_org_id == manufacturer_org_id)
        if status:
            query = query.where(Package.status == status)
        result = await db.execute(query)
        return list(result.scalars().all())
