from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
    )


class CamelSchema(BaseSchema):
    """Schema exchanged with the browser client: camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel)


class MessageResponse(BaseSchema):
    """Simple message response."""

    message: str
    success: bool = True
