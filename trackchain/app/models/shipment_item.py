"""
Shipment item database model.

One line of a shipment: a quantity reserved from one package.
"""

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from trackchain.app.db.session import Base


class ShipmentItem(Base):
    """
    Shipment item model.

    `released` flips to True once the reserved quantity was returned to the
    package (shipment rejected), so a reservation is released at most once.
    """
    __tablename__ = "shipment_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    shipment_id = Column(String(36), ForeignKey('shipments.id'), nullable=False, index=True)

    # Catalog references (denormalized path down to the package)
    product_category_id = Column(String(36), ForeignKey('product_categories.id'), nullable=False)
    product_id = Column(String(36), ForeignKey('products.id'), nullable=False)
    batch_id = Column(String(36), ForeignKey('batches.id'), nullable=False)
    package_id = Column(String(36), ForeignKey('packages.id'), nullable=False, index=True)

    quantity = Column(Integer, nullable=False)
    released = Column(Boolean, default=False, nullable=False)

    shipment = relationship("Shipment", back_populates="items")

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_shipment_items_quantity_positive'),
    )

    def __repr__(self):
        return f"<ShipmentItem(shipment_id={self.shipment_id}, package_id={self.package_id}, qty={self.quantity})>"
