"""
Product database model.
"""

import uuid

from sqlalchemy import Column, String, DateTime, Float, ForeignKey
from sqlalchemy.sql import func
from trackchain.app.db.session import Base


class Product(Base):
    """
    Product model.

    A product belongs to one category and carries the cold-chain range its
    packages must be kept in while in custody.
    """
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    category_id = Column(String(36), ForeignKey('product_categories.id'), nullable=False, index=True)
    manufacturer_org_id = Column(String(64), nullable=True, index=True)

    name = Column(String(200), nullable=False)

    # Cold chain (degrees Celsius)
    required_start_temp = Column(Float, nullable=True)
    required_end_temp = Column(Float, nullable=True)
    handling_instructions = Column(String(1000), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', category_id={self.category_id})>"
