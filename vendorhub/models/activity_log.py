"""
VendorHub — Activity Log model.
Append-only audit trail of vendor, contract, document and profile events.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, DateTime, JSON, event, func

from vendorhub.database import Base
from vendorhub.errors import AppendOnlyViolation


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActivityLog(Base):
    """Immutable audit record. Corrections are new rows, never edits."""
    __tablename__ = "activity_log"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), index=True)

    # What happened
    activity_type = Column(String(40), nullable=False, index=True)
    description = Column(Text, default="")
    icon = Column(String(10), default="📋")

    # Who did it (None for system events such as expiry detection)
    user_id = Column(String(36), nullable=True)

    # Weak subject references: ids only, the targets may since have been deleted
    vendor_id = Column(String(36), nullable=True, index=True)
    contract_id = Column(String(36), nullable=True, index=True)
    document_id = Column(String(36), nullable=True)

    # Shape depends on activity_type (see vendorhub.schemas.activity)
    extra_data = Column("metadata", JSON, default=dict)

    def __repr__(self):
        return f"<ActivityLog {self.activity_type} {self.id}>"


@event.listens_for(ActivityLog, "before_update")
def _refuse_update(mapper, connection, target):
    raise AppendOnlyViolation(target.id)


@event.listens_for(ActivityLog, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise AppendOnlyViolation(target.id)
