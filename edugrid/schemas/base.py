from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire (the field names stored documents use)."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class Envelope(CamelModel):
    success: bool = True
    message: str = ""


class MessageResponse(Envelope):
    pass
