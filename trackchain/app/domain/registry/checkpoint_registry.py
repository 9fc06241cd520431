"""
Checkpoint Registry (Domain Logic).

Registers the physical locations a shipment route is built from. The
organization that registers a checkpoint owns it, and ownership decides
who is responsible for legs departing from it.
"""

import logging
import math
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trackchain.app.core.exceptions import ValidationError, NotFoundError
from trackchain.app.models.checkpoint import Checkpoint
from trackchain.app.services.audit import log_event, AuditAction

logger = logging.getLogger(__name__)


def validate_coordinate(value, name: str, bound: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be numeric", details={"field": name, "value": str(value)})
    value = float(value)
    if not math.isfinite(value) or not -bound <= value <= bound:
        raise ValidationError(
            f"{name} must be between {-bound:g} and {bound:g}",
            details={"field": name, "value": value}
        )
    return value


def _require_text(value: Optional[str], name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{name} is required", details={"field": name})
    return str(value).strip()


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class CheckpointRegistry:

    @staticmethod
    async def create(
        db: AsyncSession,
        owner_org_id: str,
        name: str,
        address: str,
        latitude: float,
        longitude: float,
        city: Optional[str] = None,
        state: Optional[str] = None,
        country: Optional[str] = None,
        actor_subject: Optional[str] = None,
    ) -> Checkpoint:
        """
        Register a checkpoint owned by `owner_org_id`.

        The caller commits.

        Raises:
            ValidationError: blank name/address or coordinates that are not
                numbers within [-90, 90] / [-180, 180]
        """
        checkpoint = Checkpoint(
            owner_org_id=_require_text(owner_org_id, "owner_org_id"),
            name=_require_text(name, "name"),
            address=_require_text(address, "address"),
            latitude=validate_coordinate(latitude, "latitude", 90),
            longitude=validate_coordinate(longitude, "longitude", 180),
            city=_optional_text(city),
            state=_optional_text(state),
            country=_optional_text(country),
        )

        db.add(checkpoint)
        await db.flush()

        await log_event(
            db=db,
            action=AuditAction.CHECKPOINT_CREATED,
            actor_org_id=checkpoint.owner_org_id,
            actor_subject=actor_subject,
            entity_type="checkpoint",
            entity_id=checkpoint.id,
            metadata={"name": checkpoint.name, "country": checkpoint.country, "state": checkpoint.state}
        )

        logger.info("Checkpoint %s registered by %s", checkpoint.id, checkpoint.owner_org_id)
        return checkpoint

    @staticmethod
    async def get(db: AsyncSession, checkpoint_id: int) -> Checkpoint:
        checkpoint = await db.get(Checkpoint, checkpoint_id)
        if checkpoint is None:
            raise NotFoundError("Checkpoint", checkpoint_id)
        return checkpoint

    @staticmethod
    async def list_all(db: AsyncSession) -> List[Checkpoint]:
        result = await db.execute(select(Checkpoint).order_by(Checkpoint.id))
        return list(result.scalars().all())

    @staticmethod
    async def list_by_owner(db: AsyncSession, owner_org_id: str) -> List[Checkpoint]:
        result = await db.execute(
            select(Checkpoint)
            .where(Checkpoint.owner_org_id == owner_org_id)
            .order_by(Checkpoint.id)
        )
        return list(result.scalars().all())
