"""
Organization roles enumeration.

Defines the role types carried in identity-service tokens.
"""

import enum


class OrgRole(str, enum.Enum):
    """
    Organization role enumeration.

    Roles:
        ADMIN: Platform operator with system-level access
        MANUFACTURER: Registers catalog data and plans shipments
        SUPPLIER: Carries shipment segments between checkpoints
        WAREHOUSE: Operates storage checkpoints, carries segments
        DISTRIBUTOR: Receives shipments as destination party
    """
    ADMIN = "ADMIN"
    MANUFACTURER = "MANUFACTURER"
    SUPPLIER = "SUPPLIER"
    WAREHOUSE = "WAREHOUSE"
    DISTRIBUTOR = "DISTRIBUTOR"
