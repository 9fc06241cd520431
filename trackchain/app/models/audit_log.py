"""
Audit Log Database Model.

Tracks every catalog write, shipment change and custody transition.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from trackchain.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model.

    Events logged:
    - CHECKPOINT_CREATED
    - CATEGORY_CREATED / PRODUCT_CREATED / BATCH_CREATED / PACKAGE_CREATED
    - SHIPMENT_CREATED / SHIPMENT_UPDATED / SHIPMENT_CLOSED
    - SEGMENT_ACCEPTED / SEGMENT_TAKEN_OVER / SEGMENT_HANDED_OVER
    - SEGMENT_DELIVERED / SEGMENT_REJECTED
    - ORG_SUSPENDED / ORG_REINSTATED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_org_id = Column(String(64), index=True, nullable=True)
    actor_subject = Column(String(255), nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # What it was performed on
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(String(64), index=True, nullable=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    # Request that produced the entry (X-Correlation-ID)
    correlation_id = Column(String(64), nullable=True, index=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_org_id}, entity={self.entity_type}:{self.entity_id})>"
