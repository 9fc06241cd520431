"""
Shipment Planner (Domain Logic).

Creates and re-plans shipments: validates items against the catalog,
builds the ordered route of segments, assigns each segment its owner and
reserves package stock, all inside the caller's transaction.
"""

import base64
import binascii
import json
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from trackchain.app.core.exceptions import (
    InvalidStateError,
    NotFoundError,
    UnauthorizedTransitionError,
    ValidationError,
)
from trackchain.app.domain.custody.status_rules import derive_shipment_status
from trackchain.app.domain.shipments import inventory
from trackchain.app.models.batch import Batch
from trackchain.app.models.checkpoint import Checkpoint
from trackchain.app.models.package import Package
from trackchain.app.models.product import Product
from trackchain.app.models.shipment import Shipment
from trackchain.app.models.shipment_enums import SegmentStatus, ShipmentStatus
from trackchain.app.models.shipment_item import ShipmentItem
from trackchain.app.models.shipment_segment import ShipmentSegment
from trackchain.app.schemas.shipment import ShipmentItemInput, SegmentInput
from trackchain.app.services.audit import log_event, AuditAction

logger = logging.getLogger(__name__)


def segment_owner(index: int, total: int, start_checkpoint: Checkpoint, destination_org_id: str) -> str:
    """
    Organization responsible for the leg at `index` (0-based).

    Intermediate legs belong to whoever owns the checkpoint they depart
    from; the last leg belongs to the shipment's destination party.
    """
    if index == total - 1:
        return destination_org_id
    return start_checkpoint.owner_org_id


def encode_cursor(shipment: Shipment) -> str:
    payload = json.dumps({"c": shipment.created_at.isoformat(), "i": shipment.id})
    return base64.urlsafe_b64encode(payload.encode()).decode()


def decode_cursor(cursor: str) -> Tuple[datetime, str]:
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
        return datetime.fromisoformat(payload["c"]), str(payload["i"])
    except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError):
        raise ValidationError("Invalid pagination cursor", details={"cursor": cursor})


def _with_route():
    """Load a segment's shipment together with its whole route and items."""
    return (
        selectinload(ShipmentSegment.shipment).selectinload(Shipment.segments),
        selectinload(ShipmentSegment.shipment).selectinload(Shipment.items),
    )


def can_view(shipment: Shipment, org_id: str) -> bool:
    """Parties to a shipment: manufacturer, destination and segment owners."""
    if org_id in (shipment.manufacturer_org_id, shipment.destination_party_org_id):
        return True
    return any(segment.owner_org_id == org_id for segment in shipment.segments)


class ShipmentPlanner:

    @staticmethod
    async def _validate_items(
        db: AsyncSession,
        manufacturer_org_id: str,
        items: Sequence[ShipmentItemInput],
    ) -> None:
        if not items:
            raise ValidationError("A shipment needs at least one item", details={"field": "shipmentItems"})

        for position, item in enumerate(items):
            if isinstance(item.quantity, bool) or not isinstance(item.quantity, int) or item.quantity <= 0:
                raise ValidationError(
                    "Item quantity must be a positive integer",
                    details={"item": position, "quantity": item.quantity}
                )

            package = await db.get(Package, item.package_id)
            if package is None:
                raise NotFoundError("Package", item.package_id)
            batch = await db.get(Batch, package.batch_id)
            product = await db.get(Product, batch.product_id)

            mismatches = {}
            if item.batch_id != package.batch_id:
                mismatches["batch_id"] = package.batch_id
            if item.product_uuid != batch.product_id:
                mismatches["product_uuid"] = batch.product_id
            if item.product_category_id != product.category_id:
                mismatches["product_category_id"] = product.category_id
            if mismatches:
                raise ValidationError(
                    f"Item {position} does not match the catalog path of package {package.id}",
                    details={"item": position, "expected": mismatches}
                )

            if package.manufacturer_org_id != manufacturer_org_id:
                raise ValidationError(
                    f"Package {package.id} does not belong to the shipping manufacturer",
                    details={"item": position, "package_id": package.id}
                )

    @staticmethod
    async def _build_segments(
        db: AsyncSession,
        legs: Sequence[SegmentInput],
        destination_org_id: str,
    ) -> List[ShipmentSegment]:
        """Validate the route and return unsaved segments in route order."""
        if not legs:
            raise ValidationError("A shipment needs at least one segment", details={"field": "checkpoints"})

        orders = [leg.segment_order for leg in legs]
        if all(order is None for order in orders):
            ordered = list(legs)
        elif any(order is None for order in orders):
            raise ValidationError(
                "segment_order must be given for every segment or for none",
                details={"field": "segment_order"}
            )
        elif sorted(orders) != list(range(1, len(legs) + 1)):
            raise ValidationError(
                "segment_order values must form the sequence 1..N",
                details={"segment_order": orders}
            )
        else:
            ordered = sorted(legs, key=lambda leg: leg.segment_order)

        segments = []
        total = len(ordered)
        for index, leg in enumerate(ordered):
            start = await db.get(Checkpoint, leg.start_checkpoint_id)
            if start is None:
                raise NotFoundError("Checkpoint", leg.start_checkpoint_id)
            end = await db.get(Checkpoint, leg.end_checkpoint_id)
            if end is None:
                raise NotFoundError("Checkpoint", leg.end_checkpoint_id)
            if start.id == end.id:
                raise ValidationError(
                    "A segment must start and end at different checkpoints",
                    details={"segment_order": index + 1, "checkpoint_id": start.id}
                )

            segments.append(ShipmentSegment(
                segment_order=index + 1,
                start_checkpoint_id=start.id,
                end_checkpoint_id=end.id,
                expected_ship_date=leg.expected_ship_date,
                estimated_arrival_date=leg.estimated_arrival_date,
                time_tolerance=leg.time_tolerance,
                required_action=leg.required_action,
                owner_org_id=segment_owner(index, total, start, destination_org_id),
                status=SegmentStatus.PENDING_ACCEPTANCE if index == 0 else SegmentStatus.PREPARING,
            ))
        return segments

    @staticmethod
    async def create_shipment(
        db: AsyncSession,
        manufacturer_org_id: str,
        destination_org_id: str,
        items: Sequence[ShipmentItemInput],
        segments: Sequence[SegmentInput],
        actor_subject: Optional[str] = None,
    ) -> Shipment:
        """
        Plan a shipment and reserve its stock.

        The first segment starts PENDING_ACCEPTANCE, the rest PREPARING.
        The caller commits; any error leaves nothing behind once the
        session is rolled back.

        Raises:
            ValidationError: empty items/route, bad quantities or ordering,
                catalog path mismatches, identical start and end checkpoints
            NotFoundError: unknown package or checkpoint
            InsufficientInventoryError: a package cannot cover the items
        """
        if not destination_org_id or not destination_org_id.strip():
            raise ValidationError("destinationPartyUUID is required", details={"field": "destinationPartyUUID"})

        await ShipmentPlanner._validate_items(db, manufacturer_org_id, items)
        route = await ShipmentPlanner._build_segments(db, segments, destination_org_id)

        shipment = Shipment(
            manufacturer_org_id=manufacturer_org_id,
            destination_party_org_id=destination_org_id,
            status=derive_shipment_status([segment.status for segment in route]),
        )
        for item in items:
            shipment.items.append(ShipmentItem(
                product_category_id=item.product_category_id,
                product_id=item.product_uuid,
                batch_id=item.batch_id,
                package_id=item.package_id,
                quantity=item.quantity,
            ))
        shipment.segments.extend(route)

        db.add(shipment)
        await db.flush()

        await inventory.reserve(db, [(item.package_id, item.quantity) for item in items])

        await log_event(
            db=db,
            action=AuditAction.SHIPMENT_CREATED,
            actor_org_id=manufacturer_org_id,
            actor_subject=actor_subject,
            entity_type="shipment",
            entity_id=shipment.id,
            metadata={
                "destination_party_org_id": destination_org_id,
                "items": len(items),
                "segments": len(route)
            }
        )

        logger.info(
            "Shipment %s planned by %s with %s items over %s segments",
            shipment.id, manufacturer_org_id, len(items), len(route)
        )
        return shipment

    @staticmethod
    async def _lock(db: AsyncSession, shipment_id: str) -> Shipment:
        result = await db.execute(
            select(Shipment)
            .where(Shipment.id == shipment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        shipment = result.scalar_one_or_none()
        if shipment is None:
            raise NotFoundError("Shipment", shipment_id)
        return shipment

    @staticmethod
    def _require_manufacturer(shipment: Shipment, actor_org_id: str, is_admin: bool, action: str) -> None:
        if not is_admin and shipment.manufacturer_org_id != actor_org_id:
            raise UnauthorizedTransitionError(
                message=f"Only the manufacturer can {action} this shipment",
                details={"shipment_id": shipment.id, "actor_org_id": actor_org_id}
            )

    @staticmethod
    async def update_shipment(
        db: AsyncSession,
        shipment_id: str,
        actor_org_id: str,
        is_admin: bool = False,
        destination_org_id: Optional[str] = None,
        segments: Optional[Sequence[SegmentInput]] = None,
        actor_subject: Optional[str] = None,
    ) -> Shipment:
        """
        Re-plan a shipment that has not started moving.

        Replaces the destination and/or the whole route; segment owners are
        recomputed. Items and reservations are unchanged.

        Raises:
            UnauthorizedTransitionError: caller is not the manufacturer
            InvalidStateError: the shipment is no longer PREPARING
        """
        shipment = await ShipmentPlanner._lock(db, shipment_id)
        ShipmentPlanner._require_manufacturer(shipment, actor_org_id, is_admin, "update")

        if derive_shipment_status([s.status for s in shipment.segments]) != ShipmentStatus.PREPARING:
            raise InvalidStateError(
                "Shipment can only be changed while it is PREPARING",
                current_state=shipment.status.value
            )

        if destination_org_id is not None:
            if not destination_org_id.strip():
                raise ValidationError("destinationPartyUUID must not be blank",
                                      details={"field": "destinationPartyUUID"})
            shipment.destination_party_org_id = destination_org_id

        if segments is not None:
            route = await ShipmentPlanner._build_segments(db, segments, shipment.destination_party_org_id)
            shipment.segments.clear()
            await db.flush()
            shipment.segments.extend(route)
        elif shipment.segments:
            final = shipment.segments[-1]
            final.owner_org_id = shipment.destination_party_org_id

        shipment.status = derive_shipment_status([s.status for s in shipment.segments])
        await db.flush()

        await log_event(
            db=db,
            action=AuditAction.SHIPMENT_UPDATED,
            actor_org_id=actor_org_id,
            actor_subject=actor_subject,
            entity_type="shipment",
            entity_id=shipment.id,
            metadata={
                "destination_party_org_id": shipment.destination_party_org_id,
                "route_replaced": segments is not None
            }
        )
        return shipment

    @staticmethod
    async def close_shipment(
        db: AsyncSession,
        shipment_id: str,
        actor_org_id: str,
        is_admin: bool = False,
        actor_subject: Optional[str] = None,
    ) -> Shipment:
        """
        Close a delivered shipment.

        Raises:
            UnauthorizedTransitionError: caller is not the manufacturer
            InvalidStateError: the shipment is not DELIVERED
        """
        shipment = await ShipmentPlanner._lock(db, shipment_id)
        ShipmentPlanner._require_manufacturer(shipment, actor_org_id, is_admin, "close")

        if shipment.status == ShipmentStatus.CLOSED:
            return shipment
        if shipment.status != ShipmentStatus.DELIVERED:
            raise InvalidStateError(
                "Only a DELIVERED shipment can be closed",
                current_state=shipment.status.value
            )

        shipment.closed_at = datetime.now(timezone.utc)
        shipment.status = derive_shipment_status([s.status for s in shipment.segments], closed=True)
        await db.flush()

        await log_event(
            db=db,
            action=AuditAction.SHIPMENT_CLOSED,
            actor_org_id=actor_org_id,
            actor_subject=actor_subject,
            entity_type="shipment",
            entity_id=shipment.id
        )
        logger.info("Shipment %s closed by %s", shipment.id, actor_org_id)
        return shipment

    # ---- Read side --------------------------------------------------------

    @staticmethod
    async def get_shipment(db: AsyncSession, shipment_id: str) -> Shipment:
        result = await db.execute(
            select(Shipment)
            .where(Shipment.id == shipment_id)
            .execution_options(populate_existing=True)
        )
        shipment = result.scalar_one_or_none()
        if shipment is None:
            raise NotFoundError("Shipment", shipment_id)
        return shipment

    @staticmethod
    async def list_shipments(
        db: AsyncSession,
        manufacturer_org_id: Optional[str] = None,
        status: Optional[ShipmentStatus] = None,
        cursor: Optional[str] = None,
        limit: int = 20,
    ) -> Tuple[List[Shipment], Optional[str], bool]:
        """
        One page of shipments, newest first.

        Returns:
            (shipments, next_cursor, has_more); next_cursor is None on the
            last page
        """
        query = (
            select(Shipment)
            .order_by(Shipment.created_at.desc(), Shipment.id.desc())
            .execution_options(populate_existing=True)
        )
        if manufacturer_org_id:
            query = query.where(Shipment.manufacturer_org_id == manufacturer_org_id)
        if status:
            query = query.where(Shipment.status == status)
        if cursor:
            created_at, shipment_id = decode_cursor(cursor)
            query = query.where(or_(
                Shipment.created_at < created_at,
                and_(Shipment.created_at == created_at, Shipment.id < shipment_id)
            ))

        result = await db.execute(query.limit(limit + 1))
        rows = list(result.scalars().all())

        has_more = len(rows) > limit
        page = rows[:limit]
        next_cursor = encode_cursor(page[-1]) if has_more and page else None
        return page, next_cursor, has_more

    @staticmethod
    async def segments_for_owner(
        db: AsyncSession,
        owner_org_id: str,
        status: Optional[SegmentStatus] = None,
    ) -> List[ShipmentSegment]:
        """Segments an organization is responsible for, with their shipments loaded."""
        query = (
            select(ShipmentSegment)
            .options(*_with_route())
            .where(ShipmentSegment.owner_org_id == owner_org_id)
            .order_by(ShipmentSegment.created_at.desc(), ShipmentSegment.shipment_id, ShipmentSegment.segment_order)
            .execution_options(populate_existing=True)
        )
        if status:
            query = query.where(ShipmentSegment.status == status)
        result = await db.execute(query)
        return list(result.unique().scalars().all())

    @staticmethod
    async def get_segment(db: AsyncSession, segment_id: str) -> ShipmentSegment:
        result = await db.execute(
            select(ShipmentSegment)
            .options(*_with_route())
            .where(ShipmentSegment.id == segment_id)
            .execution_options(populate_existing=True)
        )
        segment = result.unique().scalar_one_or_none()
        if segment is None:
            raise NotFoundError("Segment", segment_id)
        return segment
