"""
Production batch database model.
"""

import uuid

from sqlalchemy import Column, Integer, String, DateTime, Date, ForeignKey, Enum
from sqlalchemy.sql import func
from trackchain.app.db.session import Base
from trackchain.app.models.catalog_enums import BatchReleaseStatus


class Batch(Base):
    """
    Batch model.

    One production run of a product at a manufacturer facility.
    """
    __tablename__ = "batches"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    product_id = Column(String(36), ForeignKey('products.id'), nullable=False, index=True)
    manufacturer_org_id = Column(String(64), nullable=False, index=True)

    facility = Column(String(200), nullable=False)

    # Production window
    production_start = Column(DateTime(timezone=True), nullable=False)
    production_end = Column(DateTime(timezone=True), nullable=False)

    quantity_produced = Column(Integer, nullable=False)
    release_status = Column(Enum(BatchReleaseStatus), default=BatchReleaseStatus.PENDING_QC, nullable=False)
    expiry_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self):
        return f"<Batch(id={self.id}, product_id={self.product_id}, status='{self.release_status.value}')>"
