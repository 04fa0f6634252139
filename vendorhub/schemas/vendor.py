"""
VendorHub — Vendor Pydantic schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, model_validator


class VendorCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = None
    status: str = "pending"
    notes: Optional[str] = None
    logo_url: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=100)
    score: Optional[float] = Field(None, ge=0, le=5)


class VendorUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    logo_url: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=100)

    @model_validator(mode="after")
    def _required_not_null(self):
        for name in ("name",):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class VendorRatingRequest(BaseModel):
    rating: float = Field(..., ge=0, le=5)


class VendorResponse(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    status: str
    notes: Optional[str] = None
    logo_url: Optional[str] = None
    category: Optional[str] = None
    score: Optional[float] = None
    # Alias kept for older dashboard clients
    rating: Optional[float] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class VendorListResponse(BaseModel):
    vendors: list[VendorResponse]
    total: int
