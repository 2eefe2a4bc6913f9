"""Shared response envelope and base schema."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    def dump(self) -> dict[str, Any]:
        """Serialize to JSON-ready camelCase dict."""
        return self.model_dump(mode="json", by_alias=True)


class ApiResponse(CamelModel):
    """Uniform envelope returned by every endpoint."""

    status_code: int
    data: Any = None
    message: str = "success"
    success: bool

    @classmethod
    def build(cls, status_code: int, data: Any = None, message: str = "success") -> dict[str, Any]:
        return cls(status_code=status_code, data=data, message=message, success=status_code < 400).dump()
