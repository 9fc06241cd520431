"""
Package database model.

Packages are the unit custody transfers are denominated in.
"""

import uuid

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, CheckConstraint
from sqlalchemy.sql import func
from trackchain.app.db.session import Base
from trackchain.app.models.catalog_enums import PackageStatus


class Package(Base):
    """
    Package model.

    `quantity_available` is the part of `quantity` not reserved by open
    shipments. It is only changed through conditional UPDATE statements in
    the inventory service.
    """
    __tablename__ = "packages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    batch_id = Column(String(36), ForeignKey('batches.id'), nullable=False, index=True)
    manufacturer_org_id = Column(String(64), nullable=False, index=True)

    package_code = Column(String(100), unique=True, nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    quantity_available = Column(Integer, nullable=False)
    unit = Column(String(50), nullable=False, default="units")
    notes = Column(String(500), nullable=True)

    status = Column(Enum(PackageStatus), default=PackageStatus.PACKAGE_READY_FOR_SHIPMENT, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_packages_quantity_positive'),
        CheckConstraint(
            'quantity_available >= 0 AND quantity_available <= quantity',
            name='ck_packages_quantity_available_range'
        ),
    )

    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self):
        return f"<Package(id={self.id}, code='{self.package_code}', available={self.quantity_available}/{self.quantity})>"
