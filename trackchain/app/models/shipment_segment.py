"""
Shipment segment database model.

A segment is one checkpoint-to-checkpoint leg of a shipment's route with
its own custody status.
"""

import uuid

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from trackchain.app.db.session import Base
from trackchain.app.models.shipment_enums import SegmentStatus


class ShipmentSegment(Base):
    """
    Shipment segment model.

    Only the designated owner organization may move a segment. `version`
    is the optimistic concurrency counter: a flush against a stale version
    raises StaleDataError instead of overwriting a concurrent transition.
    """
    __tablename__ = "shipment_segments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    shipment_id = Column(String(36), ForeignKey('shipments.id'), nullable=False, index=True)
    segment_order = Column(Integer, nullable=False)  # 1..N along the route

    # Route boundaries
    start_checkpoint_id = Column(Integer, ForeignKey('checkpoints.id'), nullable=False, index=True)
    end_checkpoint_id = Column(Integer, ForeignKey('checkpoints.id'), nullable=False, index=True)

    # Descriptive SLA fields (not enforced)
    expected_ship_date = Column(DateTime(timezone=True), nullable=True)
    estimated_arrival_date = Column(DateTime(timezone=True), nullable=True)
    time_tolerance = Column(String(50), nullable=True)
    required_action = Column(String(500), nullable=True)

    # Custody
    owner_org_id = Column(String(64), nullable=False, index=True)
    status = Column(Enum(SegmentStatus), default=SegmentStatus.PREPARING, nullable=False, index=True)
    rejection_reason = Column(String(500), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    taken_over_at = Column(DateTime(timezone=True), nullable=True)
    handed_over_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False)

    shipment = relationship("Shipment", back_populates="segments")
    start_checkpoint = relationship("Checkpoint", foreign_keys=[start_checkpoint_id], lazy="joined")
    end_checkpoint = relationship("Checkpoint", foreign_keys=[end_checkpoint_id], lazy="joined")

    __table_args__ = (
        UniqueConstraint('shipment_id', 'segment_order', name='uq_shipment_segments_order'),
    )

    __mapper_args__ = {"version_id_col": version, "eager_defaults": True}

    def __repr__(self):
        return f"<ShipmentSegment(id={self.id}, shipment_id={self.shipment_id}, order={self.segment_order}, status='{self.status.value}')>"
