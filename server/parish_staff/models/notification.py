from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Text

from parish_staff.core.db import Base
from parish_staff.models.staff import utc_now


class StaffNotification(Base):
    __tablename__ = "staff_notifications"

    id = Column(Integer, primary_key=True)
    kind = Column(String(64), nullable=False, index=True)
    priority = Column(String(16), nullable=False, default="medium")
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    recipient_ids = Column(JSON, nullable=True)
    recipient_roles = Column(JSON, nullable=True)
    diocese = Column(String(64), nullable=True)
    parish_id = Column(String(128), nullable=True, index=True)
    related_data = Column(JSON, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False, index=True)
