"""
Shared Schemas

Request and response bodies use camelCase keys on the wire. Python code keeps
snake_case attribute names; ``populate_by_name`` accepts either form on input.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema serialized with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    """Generic acknowledgement."""

    message: str
