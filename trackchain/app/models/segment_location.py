"""
Segment location database model.

Location observations captured when custody changes hands.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from trackchain.app.db.session import Base
from trackchain.app.models.shipment_enums import LocationEvent


class SegmentLocation(Base):
    """
    Segment location model.

    One row per takeover or handover, recording where and when it happened.
    """
    __tablename__ = "segment_locations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    segment_id = Column(String(36), ForeignKey('shipment_segments.id'), nullable=False, index=True)
    org_id = Column(String(64), nullable=False)

    event = Column(Enum(LocationEvent), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)

    recorded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self):
        return f"<SegmentLocation(segment_id={self.segment_id}, event='{self.event.value}', lat={self.latitude}, lng={self.longitude})>"
