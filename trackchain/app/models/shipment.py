"""
Shipment database model.

A shipment moves reserved packages from a manufacturer to a destination
party along an ordered route of segments.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from trackchain.app.db.session import Base
from trackchain.app.models.shipment_enums import ShipmentStatus


class Shipment(Base):
    """
    Shipment model.

    `status` is a stored projection of the segment statuses. It is written
    only by the custody state machine through `derive_shipment_status`.
    """
    __tablename__ = "shipments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Parties
    manufacturer_org_id = Column(String(64), nullable=False, index=True)
    destination_party_org_id = Column(String(64), nullable=False, index=True)

    # Derived status projection
    status = Column(Enum(ShipmentStatus), default=ShipmentStatus.PREPARING, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "ShipmentItem",
        back_populates="shipment",
        cascade="all, delete-orphan",
        order_by="ShipmentItem.id",
        lazy="selectin",
    )
    segments = relationship(
        "ShipmentSegment",
        back_populates="shipment",
        cascade="all, delete-orphan",
        order_by="ShipmentSegment.segment_order",
        lazy="selectin",
    )

    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self):
        return f"<Shipment(id={self.id}, manufacturer={self.manufacturer_org_id}, status='{self.status.value}')>"
