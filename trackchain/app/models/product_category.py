"""
Product category database model.
"""

import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from trackchain.app.db.session import Base


class ProductCategory(Base):
    """Top level of the catalog hierarchy (e.g. "Vaccines")."""
    __tablename__ = "product_categories"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(200), unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self):
        return f"<ProductCategory(id={self.id}, name='{self.name}')>"
