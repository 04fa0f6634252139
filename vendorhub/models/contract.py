"""
VendorHub — Contract & Document models.
"""

import uuid

from sqlalchemy import (
    Column, String, Text, DateTime, Date, BigInteger, Boolean,
    ForeignKey, Integer, func,
)

from vendorhub.database import Base


class Contract(Base):
    """An agreement with a vendor."""
    __tablename__ = "contracts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    vendor_id = Column(String(36), ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)

    # Timeline
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False, index=True)

    # Whole currency units; summed as integers, scaled only for display
    value = Column(BigInteger, nullable=False, default=0)

    # Status: draft, pending, active, completed, terminated, expired
    status = Column(String(20), default="draft")
    is_urgent = Column(Boolean, default=False)

    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Contract {self.title}>"


class Document(Base):
    """Metadata for a file held in the blob store.

    ``entity_id`` is a plain id (no foreign key) so the owning vendor or
    contract can be deleted without touching its documents.
    """
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)

    entity_type = Column(String(20), nullable=False)   # "vendor" or "contract"
    entity_id = Column(String(36), nullable=False, index=True)

    file_path = Column(String(500), nullable=False)
    file_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)

    uploaded_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Document {self.name}>"
