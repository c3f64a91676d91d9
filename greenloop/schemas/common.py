"""
Shared schema primitives used across the API.

Every successful response is wrapped as {"data": ...}; every failure as
{"error": {"code", "message", "details"}}.
"""
from typing import Any, Generic, Optional, TypeVar
from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class ErrorDetail(BaseModel):
    """A single field-level validation error."""
    field: str
    message: str
    type: str


class ErrorBody(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Standard error envelope returned for all 4xx/5xx responses."""
    error: ErrorBody


class DataResponse(BaseModel, Generic[T]):
    data: T


class Page(BaseModel, Generic[T]):
    total: int
    items: list[T]
