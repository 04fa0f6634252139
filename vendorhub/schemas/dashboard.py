"""
VendorHub — Dashboard aggregation schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AggregateBucket(BaseModel):
    label: str
    value: float | int


class SpendBucket(AggregateBucket):
    # Undivided integer total, kept so callers can re-scale without drift
    raw_total: int


class RankedEntity(BaseModel):
    id: str
    label: str
    value: float | int


class ScorePoint(BaseModel):
    label: str
    score: float


class RecentVendor(BaseModel):
    id: str
    name: str
    created_at: Optional[datetime] = None


class RecentContract(BaseModel):
    id: str
    title: str
    vendor_name: str
    created_at: Optional[datetime] = None


class DashboardStats(BaseModel):
    total_vendors: int
    active_vendors: int = 0
    active_contracts: int
    total_documents: int
    recent_vendors: list[RecentVendor] = []
    recent_contracts: list[RecentContract] = []
