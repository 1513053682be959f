"""
Response envelope shared by every endpoint.

Mirrors ``ServiceResult``: ``{success, data, error, message}``.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from ..errors import ReasonCode

T = TypeVar('T')


class ServiceResponse(BaseModel, Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[ReasonCode] = Field(None, description="Stable reason code when success is false")
    message: Optional[str] = None

