"""
Custody State Machine (Domain Logic).

Moves one shipment segment through its custody lifecycle:

    PREPARING → PENDING_ACCEPTANCE → ACCEPTED → IN_TRANSIT
    → HANDOVER_READY → HANDOVER_COMPLETE
    PENDING_ACCEPTANCE → REJECTED

Each transition validates the actor, the current state and the position
of the segment along the route, applies its side effects on neighbouring
segments, packages and the shipment projection, and flushes everything
in the caller's transaction.

The shipment row is locked first and its segments after it in route order,
so every custody write on one shipment takes its locks in the same order.
Segments are written through their `version` counter; a lost race surfaces
as ConflictError.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from trackchain.app.core.exceptions import (
    ConflictError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    OutOfSequenceError,
    UnauthorizedTransitionError,
    ValidationError,
)
from trackchain.app.domain.custody.status_rules import (
    derive_shipment_status,
    flow_position,
    predecessor_released,
)
from trackchain.app.domain.registry.checkpoint_registry import validate_coordinate
from trackchain.app.domain.shipments import inventory
from trackchain.app.models.catalog_enums import PackageStatus
from trackchain.app.models.segment_location import SegmentLocation
from trackchain.app.models.shipment import Shipment
from trackchain.app.models.shipment_enums import LocationEvent, SegmentStatus, ShipmentStatus
from trackchain.app.models.shipment_segment import ShipmentSegment
from trackchain.app.services.audit import log_event, AuditAction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    name: str
    source: SegmentStatus
    target: SegmentStatus
    audit_action: str


ACCEPT = Transition(
    name="accept",
    source=SegmentStatus.PENDING_ACCEPTANCE,
    target=SegmentStatus.ACCEPTED,
    audit_action=AuditAction.SEGMENT_ACCEPTED,
)

TAKE_OVER = Transition(
    name="take_over",
    source=SegmentStatus.ACCEPTED,
    target=SegmentStatus.IN_TRANSIT,
    audit_action=AuditAction.SEGMENT_TAKEN_OVER,
)

HANDOVER = Transition(
    name="handover",
    source=SegmentStatus.IN_TRANSIT,
    target=SegmentStatus.HANDOVER_READY,
    audit_action=AuditAction.SEGMENT_HANDED_OVER,
)

CONFIRM_DELIVERY = Transition(
    name="confirm_delivery",
    source=SegmentStatus.HANDOVER_READY,
    target=SegmentStatus.HANDOVER_COMPLETE,
    audit_action=AuditAction.SEGMENT_DELIVERED,
)

REJECT = Transition(
    name="reject",
    source=SegmentStatus.PENDING_ACCEPTANCE,
    target=SegmentStatus.REJECTED,
    audit_action=AuditAction.SEGMENT_REJECTED,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def flush_transition(db: AsyncSession) -> None:
    """
    Flush pending custody writes.

    Raises:
        ConflictError: a segment row changed since it was read
    """
    try:
        await db.flush()
    except StaleDataError as exc:
        logger.warning("Concurrent custody update detected: %s", exc)
        raise ConflictError(
            "Segment was modified by a concurrent request, reload and retry",
            details={"reason": "version_mismatch"}
        )


class _TransitionContext:
    """Locked segment with its shipment and immediate neighbours."""

    def __init__(self, shipment: Shipment, segment: ShipmentSegment):
        self.shipment = shipment
        self.segment = segment
        self.segments = list(shipment.segments)
        index = next(i for i, s in enumerate(self.segments) if s.id == segment.id)
        self.previous: Optional[ShipmentSegment] = self.segments[index - 1] if index > 0 else None
        self.next: Optional[ShipmentSegment] = (
            self.segments[index + 1] if index + 1 < len(self.segments) else None
        )
        self.is_final = self.next is None


class CustodyStateMachine:

    @staticmethod
    async def _load(db: AsyncSession, segment_id: str) -> _TransitionContext:
        # Lock order: shipment first, then its segments by segment_order.
        shipment_id = await db.scalar(
            select(ShipmentSegment.shipment_id).where(ShipmentSegment.id == segment_id)
        )
        if shipment_id is None:
            raise NotFoundError("Segment", segment_id)

        shipment_result = await db.execute(
            select(Shipment)
            .where(Shipment.id == shipment_id)
            .with_for_update(of=Shipment)
            .execution_options(populate_existing=True)
        )
        shipment = shipment_result.scalar_one()

        segment_result = await db.execute(
            select(ShipmentSegment)
            .where(ShipmentSegment.shipment_id == shipment_id)
            .order_by(ShipmentSegment.segment_order)
            .with_for_update(of=ShipmentSegment)
            .execution_options(populate_existing=True)
        )
        segment = next(s for s in segment_result.unique().scalars().all() if s.id == segment_id)
        return _TransitionContext(shipment, segment)

    @staticmethod
    def _authorize(transition: Transition, ctx: _TransitionContext, actor_org_id: str) -> None:
        if transition is CONFIRM_DELIVERY:
            allowed = ctx.shipment.destination_party_org_id
            role = "destination party"
        else:
            allowed = ctx.segment.owner_org_id
            role = "segment owner"

        if actor_org_id != allowed:
            raise UnauthorizedTransitionError(
                message=f"Only the {role} can {transition.name.replace('_', ' ')} this segment",
                details={"segment_id": ctx.segment.id, "actor_org_id": actor_org_id}
            )

    @staticmethod
    def _check_source(transition: Transition, segment: ShipmentSegment) -> None:
        current = segment.status
        if current == transition.source:
            return

        if current == SegmentStatus.PREPARING:
            raise OutOfSequenceError(
                "Segment is not active yet; the previous leg has not been accepted",
                segment_id=segment.id,
                current_state=current.value
            )

        position = flow_position(current)
        if position != -1 and position < flow_position(transition.source):
            raise OutOfSequenceError(
                f"Cannot {transition.name.replace('_', ' ')} a segment that is {current.value}",
                segment_id=segment.id,
                current_state=current.value
            )

        raise InvalidTransitionError(segment.id, current.value, transition.target.value)

    @staticmethod
    async def _run(
        db: AsyncSession,
        transition: Transition,
        segment_id: str,
        actor_org_id: str,
        actor_subject: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> ShipmentSegment:
        ctx = await CustodyStateMachine._load(db, segment_id)
        segment = ctx.segment

        CustodyStateMachine._authorize(transition, ctx, actor_org_id)

        if transition is CONFIRM_DELIVERY and not ctx.is_final:
            raise ValidationError(
                "Only the final segment can be confirmed as delivered",
                details={"segment_id": segment.id, "segment_order": segment.segment_order}
            )

        if segment.status == transition.target:
            logger.info("Replayed %s on segment %s ignored", transition.name, segment.id)
            return segment

        if ctx.shipment.status in (ShipmentStatus.REJECTED, ShipmentStatus.CLOSED):
            raise InvalidStateError(
                f"Shipment is {ctx.shipment.status.value}; no further custody changes are allowed",
                current_state=ctx.shipment.status.value
            )

        CustodyStateMachine._check_source(transition, segment)

        now = _now()
        metadata = {"shipment_id": ctx.shipment.id, "segment_order": segment.segment_order,
                    "from": segment.status.value, "to": transition.target.value}

        if transition is ACCEPT:
            segment.accepted_at = now
            CustodyStateMachine._complete_previous(ctx, now)
            if ctx.next is not None and ctx.next.status == SegmentStatus.PREPARING:
                ctx.next.status = SegmentStatus.PENDING_ACCEPTANCE

        elif transition is TAKE_OVER:
            if not predecessor_released(ctx.previous.status if ctx.previous is not None else None):
                raise OutOfSequenceError(
                    "The previous leg has not handed the goods over yet",
                    segment_id=segment.id,
                    current_state=segment.status.value
                )
            segment.taken_over_at = now
            CustodyStateMachine._complete_previous(ctx, now)
            CustodyStateMachine._record_location(db, segment, actor_org_id, LocationEvent.TAKEOVER,
                                                 latitude, longitude, metadata)
            if ctx.previous is None:
                await inventory.set_status(
                    db,
                    [item.package_id for item in ctx.shipment.items],
                    PackageStatus.PACKAGE_IN_TRANSIT,
                    from_statuses=[PackageStatus.PACKAGE_ALLOCATED]
                )

        elif transition is HANDOVER:
            segment.handed_over_at = now
            CustodyStateMachine._record_location(db, segment, actor_org_id, LocationEvent.HANDOVER,
                                                 latitude, longitude, metadata)

        elif transition is CONFIRM_DELIVERY:
            segment.completed_at = now

        elif transition is REJECT:
            if not reason or not reason.strip():
                raise ValidationError("A rejection reason is required", details={"field": "reason"})
            segment.rejected_at = now
            segment.rejection_reason = reason.strip()
            metadata["reason"] = segment.rejection_reason
            released = [item for item in ctx.shipment.items if not item.released]
            await inventory.release(db, [(item.package_id, item.quantity) for item in released])
            for item in released:
                item.released = True
            metadata["released_items"] = len(released)

        segment.status = transition.target
        ctx.shipment.status = derive_shipment_status(
            [s.status for s in ctx.segments],
            closed=ctx.shipment.closed_at is not None
        )

        await flush_transition(db)

        if transition is CONFIRM_DELIVERY:
            await inventory.refresh_status(db, [item.package_id for item in ctx.shipment.items])

        await log_event(
            db=db,
            action=transition.audit_action,
            actor_org_id=actor_org_id,
            actor_subject=actor_subject,
            entity_type="segment",
            entity_id=segment.id,
            metadata=metadata
        )

        logger.info(
            "Segment %s of shipment %s: %s -> %s by %s (shipment %s)",
            segment.id, ctx.shipment.id, metadata["from"], transition.target.value,
            actor_org_id, ctx.shipment.status.value
        )
        return segment

    @staticmethod
    def _complete_previous(ctx: _TransitionContext, now: datetime) -> None:
        if ctx.previous is not None and ctx.previous.status == SegmentStatus.HANDOVER_READY:
            ctx.previous.status = SegmentStatus.HANDOVER_COMPLETE
            ctx.previous.completed_at = now

    @staticmethod
    def _record_location(db: AsyncSession, segment: ShipmentSegment, org_id: str, event: LocationEvent,
                         latitude, longitude, metadata: dict) -> None:
        location = SegmentLocation(
            segment_id=segment.id,
            org_id=org_id,
            event=event,
            latitude=validate_coordinate(latitude, "latitude", 90),
            longitude=validate_coordinate(longitude, "longitude", 180),
        )
        db.add(location)
        metadata["latitude"] = location.latitude
        metadata["longitude"] = location.longitude

    # ---- Public operations ------------------------------------------------

    @staticmethod
    async def accept(db: AsyncSession, segment_id: str, actor_org_id: str,
                     actor_subject: Optional[str] = None) -> ShipmentSegment:
        """Owner accepts responsibility for a pending segment."""
        return await CustodyStateMachine._run(db, ACCEPT, segment_id, actor_org_id, actor_subject)

    @staticmethod
    async def take_over(db: AsyncSession, segment_id: str, actor_org_id: str,
                        latitude: float, longitude: float,
                        actor_subject: Optional[str] = None) -> ShipmentSegment:
        """Owner physically takes the goods; records where it happened."""
        return await CustodyStateMachine._run(db, TAKE_OVER, segment_id, actor_org_id, actor_subject,
                                              latitude=latitude, longitude=longitude)

    @staticmethod
    async def handover(db: AsyncSession, segment_id: str, actor_org_id: str,
                       latitude: float, longitude: float,
                       actor_subject: Optional[str] = None) -> ShipmentSegment:
        """Owner releases the goods at the end checkpoint."""
        return await CustodyStateMachine._run(db, HANDOVER, segment_id, actor_org_id, actor_subject,
                                              latitude=latitude, longitude=longitude)

    @staticmethod
    async def confirm_delivery(db: AsyncSession, segment_id: str, actor_org_id: str,
                               actor_subject: Optional[str] = None) -> ShipmentSegment:
        """Destination party acknowledges receipt on the final segment."""
        return await CustodyStateMachine._run(db, CONFIRM_DELIVERY, segment_id, actor_org_id, actor_subject)

    @staticmethod
    async def reject(db: AsyncSession, segment_id: str, actor_org_id: str, reason: str,
                     actor_subject: Optional[str] = None) -> ShipmentSegment:
        """
        Owner declines a pending segment.

        The whole shipment becomes REJECTED and its reserved quantities
        return to their packages exactly once.
        """
        return await CustodyStateMachine._run(db, REJECT, segment_id, actor_org_id, actor_subject,
                                              reason=reason)
