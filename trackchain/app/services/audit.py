"""
Audit logging service for custody and catalog events.

Entries are added to the caller's transaction so an audit record commits
or rolls back together with the change it describes.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from trackchain.app.models.audit_log import AuditLog
from trackchain.app.core.observability import current_correlation_id


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""

    # Checkpoint Registry
    CHECKPOINT_CREATED = "CHECKPOINT_CREATED"

    # Catalog
    CATEGORY_CREATED = "CATEGORY_CREATED"
    CATEGORY_UPDATED = "CATEGORY_UPDATED"
    PRODUCT_CREATED = "PRODUCT_CREATED"
    PRODUCT_UPDATED = "PRODUCT_UPDATED"
    BATCH_CREATED = "BATCH_CREATED"
    PACKAGE_CREATED = "PACKAGE_CREATED"
    PACKAGE_UPDATED = "PACKAGE_UPDATED"

    # Shipment Planner
    SHIPMENT_CREATED = "SHIPMENT_CREATED"
    SHIPMENT_UPDATED = "SHIPMENT_UPDATED"
    SHIPMENT_CLOSED = "SHIPMENT_CLOSED"

    # Custody transitions
    SEGMENT_ACCEPTED = "SEGMENT_ACCEPTED"
    SEGMENT_TAKEN_OVER = "SEGMENT_TAKEN_OVER"
    SEGMENT_HANDED_OVER = "SEGMENT_HANDED_OVER"
    SEGMENT_DELIVERED = "SEGMENT_DELIVERED"
    SEGMENT_REJECTED = "SEGMENT_REJECTED"

    # Administration
    ORG_SUSPENDED = "ORG_SUSPENDED"
    ORG_REINSTATED = "ORG_REINSTATED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_org_id: Optional[str] = None,
    actor_subject: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[Any] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Record an event in the audit log.

    The entry is stamped with the correlation id of the current request.

    Args:
        db: Database session (the caller commits)
        action: Action being performed (use AuditAction constants)
        actor_org_id: Organization performing the action
        actor_subject: Token subject of the caller
        entity_type: Kind of entity acted upon ("shipment", "segment", ...)
        entity_id: Id of the entity acted upon
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_org_id=actor_org_id,
        actor_subject=actor_subject,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta_data=metadata,
        correlation_id=current_correlation_id()
    )

    db.add(audit_log)
    await db.flush()

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    actor_org_id: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if entity_id:
        query = query.where(AuditLog.entity_id == entity_id)

    if action:
        query = query.where(AuditLog.action == action)

    if actor_org_id:
        query = query.where(AuditLog.actor_org_id == actor_org_id)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
