from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, String

from parish_staff.core.db import IdentityBase
from parish_staff.models.staff import utc_now


class Credential(IdentityBase):
    __tablename__ = "credentials"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    disabled = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    last_sign_in_at = Column(DateTime(timezone=True), nullable=True)
