"""
VendorHub — Vendor & Profile models.
"""

import uuid

from sqlalchemy import Column, String, Text, DateTime, Float, func

from vendorhub.database import Base


class Vendor(Base):
    """A supplier tracked by the organisation."""
    __tablename__ = "vendors"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(200), nullable=False, index=True)
    email = Column(String(200), nullable=True)
    phone = Column(String(30), nullable=True)
    address = Column(Text, nullable=True)

    # Status: pending, active, inactive
    status = Column(String(20), default="pending")
    notes = Column(Text, nullable=True)
    logo_url = Column(String(500), nullable=True)

    # Free text; blank or NULL means "Uncategorized" on the dashboard
    category = Column(String(100), nullable=True)
    # 0-5 rating, NULL until first rated
    score = Column(Float, nullable=True)

    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Vendor {self.name}>"


class Profile(Base):
    """Display data for an identity-provider user."""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)
    full_name = Column(String(200), nullable=True)
    email = Column(String(200), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Profile {self.full_name or self.id}>"
