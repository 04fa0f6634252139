"""
VendorHub — Contract & Document Pydantic schemas.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator


# ── Contract ────────────────────────────────────────────
class ContractCreateRequest(BaseModel):
    vendor_id: str
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    start_date: date
    end_date: date
    value: int = Field(0, ge=0)
    status: str = "draft"
    is_urgent: bool = False

    @model_validator(mode="after")
    def _dates_in_order(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ContractUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    value: Optional[int] = Field(None, ge=0)
    status: Optional[str] = None
    is_urgent: Optional[bool] = None

    @model_validator(mode="after")
    def _required_not_null(self):
        for name in ("title", "start_date", "end_date", "value", "is_urgent"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class ContractResponse(BaseModel):
    id: str
    vendor_id: str
    vendor_name: Optional[str] = None
    title: str
    description: Optional[str] = None
    start_date: date
    end_date: date
    value: int
    status: str
    is_urgent: bool = False
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ContractListResponse(BaseModel):
    contracts: list[ContractResponse]
    total: int


# ── Document ────────────────────────────────────────────
class DocumentCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    entity_type: Literal["vendor", "contract"]
    entity_id: str
    file_path: str = Field(..., min_length=1, max_length=500)
    file_type: Optional[str] = Field(None, max_length=100)
    file_size: Optional[int] = Field(None, ge=0)


class DocumentResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    entity_type: str
    entity_id: str
    file_path: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    uploaded_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DocumentListResponse(BaseModel):
    documents: list[DocumentResponse]
    total: int
