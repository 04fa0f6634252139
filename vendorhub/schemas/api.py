"""
VendorHub — Response envelope shared by every endpoint.
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiError(BaseModel):
    message: str
    code: str = "service_error"
    status: Optional[int] = None
    details: dict[str, Any] = Field(default_factory=dict)


class ApiResponse(BaseModel, Generic[T]):
    data: Optional[T] = None
    error: Optional[ApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None
