from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from parish_staff.models.staff import StaffPosition, StaffRole, StaffStatus


class StaffRegistrationRequest(BaseModel):
    # Plain strings: the registration service owns validation so callers get the
    # same error codes over HTTP and in-process.
    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=255)
    name: str = Field(..., max_length=255)
    diocese: str = Field(..., max_length=64)
    parish_id: str = Field(..., max_length=128)
    parish_name: str = Field(..., max_length=255)
    municipality: str = Field("", max_length=255)
    position: str = Field(..., max_length=32)
    phone: Optional[str] = Field(None, max_length=50)


class ApproveRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)


class RejectRequest(BaseModel):
    reason: str = Field("", max_length=1000)


class ToggleStatusRequest(BaseModel):
    status: str
    reason: Optional[str] = Field(None, max_length=1000)


class EndTermRequest(BaseModel):
    reason: str = Field("", max_length=1000)


class StaffActionResult(BaseModel):
    success: bool = True
    message: str
    account_id: Optional[str] = None
    term_record_id: Optional[str] = None
    archived_staff_id: Optional[str] = None


class StaffAccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str
    role: StaffRole
    diocese: str
    parish_id: Optional[str] = None
    parish_name: Optional[str] = None
    municipality: Optional[str] = None
    position: Optional[StaffPosition] = None
    phone: Optional[str] = None
    status: StaffStatus
    registration_source: Optional[str] = None
    created_at: datetime
    registered_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_by_name: Optional[str] = None
    approval_notes: Optional[str] = None
    term_start: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    deactivated_at: Optional[datetime] = None
    deactivated_by: Optional[str] = None
    deactivation_reason: Optional[str] = None
    reactivated_at: Optional[datetime] = None
    reactivated_by: Optional[str] = None
    archived_at: Optional[datetime] = None
    archived_reason: Optional[str] = None


class StaffListResponse(BaseModel):
    items: list[StaffAccountOut]
    total: int


class TermStats(BaseModel):
    total_actions: int = 0
    breakdown_by_kind: dict[str, int] = Field(default_factory=dict)
    last_action_at: Optional[str] = None


class TermRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    staff_id: str
    staff_name: str
    staff_email: str
    diocese: str
    parish_id: Optional[str] = None
    parish_name: Optional[str] = None
    position: Optional[StaffPosition] = None
    term_start: datetime
    term_end: datetime
    status: str
    end_reason: Optional[str] = None
    ended_by: Optional[str] = None
    approved_successor_id: Optional[str] = None
    stats: Optional[TermStats] = None


class StaffAuditEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    action: str
    actor_id: str
    actor_email: Optional[str] = None
    actor_name: Optional[str] = None
    target_type: str
    target_id: str
    resource_name: Optional[str] = None
    changes: Optional[list[dict[str, Any]]] = None
    details: Optional[dict[str, Any]] = None
    created_at: datetime
