"""
Shared schema configuration for the shipment surface.

Shipment and segment payloads travel in camelCase on the wire. Fields are
declared in snake_case and may be populated by either name.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelSchema(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
        serialize_by_alias=True,
    )
