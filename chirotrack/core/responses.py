"""
Response envelope shared by every endpoint.

Successful responses look like ``{"success": true, "message": ..., "data": ...}``;
errors use the same shape with ``success`` false (see ``chirotrack.exceptions``).
"""
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema whose JSON field names are camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def success_response(message: str, data: Optional[Any] = None, **extra) -> dict:
    """
    Build a success envelope.

    Args:
        message: Human-readable outcome
        data: Payload; omitted from the body when empty
        **extra: Additional top-level keys (for example ``warning``)

    Returns:
        dict: The envelope, ready for JSON serialization
    """
    body = {"success": True, "message": message}
    if data:
        body["data"] = jsonable_encoder(data, by_alias=True)
    for key, value in extra.items():
        if value is not None:
            body[key] = value
    return body
