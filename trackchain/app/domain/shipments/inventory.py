"""
Package inventory reservation and package status.

Reservations decrement `quantity_available` with a conditional UPDATE so
two concurrent shipments can never both draw the last units of a package:
the row only changes when enough stock is left at write time.
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Tuple

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from trackchain.app.core.exceptions import InsufficientInventoryError
from trackchain.app.models.package import Package
from trackchain.app.models.catalog_enums import PackageStatus
from trackchain.app.models.shipment import Shipment
from trackchain.app.models.shipment_enums import ShipmentStatus
from trackchain.app.models.shipment_item import ShipmentItem
from trackchain.app.models.shipment_segment import ShipmentSegment

logger = logging.getLogger(__name__)

OPEN_SHIPMENT_STATUSES = (ShipmentStatus.PREPARING, ShipmentStatus.IN_TRANSIT)


def sum_by_package(lines: Iterable[Tuple[str, int]]) -> Dict[str, int]:
    """Total quantity per package id, in first-seen order."""
    totals: Dict[str, int] = OrderedDict()
    for package_id, quantity in lines:
        totals[package_id] = totals.get(package_id, 0) + quantity
    return totals


async def reserve(db: AsyncSession, lines: Iterable[Tuple[str, int]]) -> None:
    """
    Reserve stock for (package_id, quantity) lines.

    Quantities for the same package are summed first. Runs inside the
    caller's transaction; on failure nothing is committed.

    Raises:
        InsufficientInventoryError: a package cannot cover its total
    """
    for package_id, quantity in sum_by_package(lines).items():
        result = await db.execute(
            update(Package)
            .where(Package.id == package_id, Package.quantity_available >= quantity)
            .values(quantity_available=Package.quantity_available - quantity)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            package = await db.get(Package, package_id, populate_existing=True)
            available = package.quantity_available if package is not None else None
            logger.warning(
                "Reservation of %s from package %s refused (available=%s)",
                quantity, package_id, available
            )
            raise InsufficientInventoryError(package_id, quantity, available)

        await db.execute(
            update(Package)
            .where(Package.id == package_id, Package.quantity_available == 0)
            .values(status=PackageStatus.PACKAGE_ALLOCATED)
            .execution_options(synchronize_session="fetch")
        )
        logger.info("Reserved %s from package %s", quantity, package_id)


async def release(db: AsyncSession, lines: Iterable[Tuple[str, int]]) -> None:
    """Return reserved stock to packages; a package with stock on hand is ready again."""
    for package_id, quantity in sum_by_package(lines).items():
        await db.execute(
            update(Package)
            .where(Package.id == package_id)
            .values(quantity_available=Package.quantity_available + quantity)
            .execution_options(synchronize_session="fetch")
        )
        await db.execute(
            update(Package)
            .where(Package.id == package_id, Package.quantity_available > 0)
            .values(status=PackageStatus.PACKAGE_READY_FOR_SHIPMENT)
            .execution_options(synchronize_session="fetch")
        )
        logger.info("Released %s back to package %s", quantity, package_id)


async def refresh_status(db: AsyncSession, package_ids: Iterable[str]) -> None:
    """
    Recompute package statuses once a shipment holding them is settled.

    A package with stock on hand is ready for shipment. Without stock it
    follows the open shipments still holding unreleased items on it:
    in transit once any of them was taken over, allocated while they are
    all preparing, and delivered when none is left.
    """
    for package_id in dict.fromkeys(package_ids):
        package = await db.get(Package, package_id, populate_existing=True)
        if package is None:
            continue

        if package.quantity_available > 0:
            status = PackageStatus.PACKAGE_READY_FOR_SHIPMENT
        else:
            result = await db.execute(
                select(ShipmentSegment.taken_over_at)
                .select_from(ShipmentItem)
                .join(Shipment, Shipment.id == ShipmentItem.shipment_id)
                .join(ShipmentSegment, and_(
                    ShipmentSegment.shipment_id == Shipment.id,
                    ShipmentSegment.segment_order == 1
                ))
                .where(
                    ShipmentItem.package_id == package_id,
                    ShipmentItem.released.is_(False),
                    Shipment.status.in_(OPEN_SHIPMENT_STATUSES)
                )
            )
            holders = list(result.scalars().all())
            if any(taken_over_at is not None for taken_over_at in holders):
                status = PackageStatus.PACKAGE_IN_TRANSIT
            elif holders:
                status = PackageStatus.PACKAGE_ALLOCATED
            else:
                status = PackageStatus.PACKAGE_DELIVERED

        if package.status != status:
            logger.info("Package %s: %s -> %s", package_id, package.status.value, status.value)
            package.status = status
    await db.flush()


async def set_status(
    db: AsyncSession,
    package_ids: List[str],
    status: PackageStatus,
    from_statuses: Iterable[PackageStatus] = None,
) -> None:
    """Move packages to `status`, optionally only from the given statuses."""
    if not package_ids:
        return
    query = update(Package).where(Package.id.in_(list(package_ids)))
    if from_statuses is not None:
        query = query.where(Package.status.in_(list(from_statuses)))
    await db.execute(query.values(status=status).execution_options(synchronize_session="fetch"))
