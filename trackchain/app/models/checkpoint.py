"""
Checkpoint database model.

Organizations register the physical locations (facilities, warehouses,
ports) that shipment segments start and end at.
"""

from sqlalchemy import Column, Integer, String, DateTime, Float
from sqlalchemy.sql import func
from trackchain.app.db.session import Base


class Checkpoint(Base):
    """
    Checkpoint model.

    A checkpoint is a registered physical location owned by one organization.
    It is immutable once created: segments reference it by id for the
    lifetime of their shipment.
    """
    __tablename__ = "checkpoints"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Ownership - organization operating the location
    owner_org_id = Column(String(64), nullable=False, index=True)

    # Location details
    name = Column(String(200), nullable=False)
    address = Column(String(500), nullable=False)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)

    # Geolocation
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self):
        return f"<Checkpoint(id={self.id}, name='{self.name}', owner={self.owner_org_id})>"
