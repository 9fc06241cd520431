"""
API Router.

Aggregates all API endpoints.
"""

from fastapi import APIRouter
from trackchain.app.api.v1.endpoints import (
    auth, admin, checkpoints, catalog, shipments, shipment_segments
)

router = APIRouter()

# Identity
router.include_router(auth.router)
router.include_router(admin.router)

# Checkpoint Registry
router.include_router(checkpoints.router)

# Catalog: categories, products, batches, packages
router.include_router(catalog.router)

# Shipment Planner
router.include_router(shipments.router)

# Custody transitions
router.include_router(shipment_segments.router)
