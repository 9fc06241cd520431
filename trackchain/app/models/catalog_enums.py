"""
Catalog enumerations.
"""

import enum


class PackageStatus(str, enum.Enum):
    """
    Package status enumeration.

    Status flow:
        PACKAGE_READY_FOR_SHIPMENT → PACKAGE_ALLOCATED (no stock left)
        → PACKAGE_IN_TRANSIT → PACKAGE_DELIVERED (no open shipment left)
        Any package with stock on hand is PACKAGE_READY_FOR_SHIPMENT
    """
    PACKAGE_READY_FOR_SHIPMENT = "PACKAGE_READY_FOR_SHIPMENT"
    PACKAGE_ALLOCATED = "PACKAGE_ALLOCATED"
    PACKAGE_IN_TRANSIT = "PACKAGE_IN_TRANSIT"
    PACKAGE_DELIVERED = "PACKAGE_DELIVERED"


class BatchReleaseStatus(str, enum.Enum):
    """Quality release status of a production batch."""
    PENDING_QC = "PENDING_QC"
    RELEASED = "RELEASED"
    QUARANTINED = "QUARANTINED"
    REJECTED = "REJECTED"
