from datetime import date as date_type, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from salesdesk.models import (
    ActivityStatus,
    ActivityType,
    ChecklistItemKey,
    ClientStatus,
    PpnType,
    ReportStatus,
    Role,
)


# --- Pydantic Models ---
# Request and response bodies are camelCase on the wire and snake_case in code.


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# --- Users ---
class UserOut(CamelModel):
    id: str
    name: str
    role: Role
    avatar: Optional[str] = None
    supervisor_id: Optional[str] = None
    is_active: bool = True


class UserCreate(CamelModel):
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=100)
    role: Role
    supervisor_id: Optional[str] = None
    avatar: Optional[str] = None


class UserUpdate(CamelModel):
    id: str
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    role: Optional[Role] = None
    supervisor_id: Optional[str] = None
    avatar: Optional[str] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(default=None, min_length=1)


# --- Clients ---
class ClientFields(CamelModel):
    name: Optional[str] = Field(default=None, max_length=200)
    industry: Optional[str] = None
    pic_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    status: Optional[ClientStatus] = None
    estimated_value: Optional[float] = Field(default=None, ge=0)
    service_type: Optional[str] = None
    year_work: Optional[int] = None
    year_book: Optional[int] = None
    dpp: Optional[float] = Field(default=None, ge=0)
    ppn_type: Optional[PpnType] = None
    dp_paid: Optional[float] = Field(default=None, ge=0)


class ClientCreate(ClientFields):
    name: str = Field(min_length=1, max_length=200)
    # Only honoured for managers creating on behalf of a field user.
    marketing_id: Optional[str] = None


class ClientUpdate(ClientFields):
    id: str


class ClientImportRequest(CamelModel):
    clients: List[dict] = Field(min_length=1)


class ClientOut(CamelModel):
    id: str
    name: str
    industry: str
    pic_name: str
    phone: str
    email: str
    address: str
    marketing_id: str
    status: ClientStatus
    estimated_value: float
    service_type: str
    year_work: Optional[int] = None
    year_book: Optional[int] = None
    dpp: float
    ppn_type: PpnType
    dp_paid: float
    auditor_assignee: Optional[str] = None
    last_update: date_type
    created_at: Optional[datetime] = None
    days_stagnant: int = 0
    stagnant: bool = False
    audit_eligible: bool = False


class SkippedRow(CamelModel):
    row: int
    name: Optional[str] = None
    reason: str


class ImportResult(CamelModel):
    imported: List[ClientOut]
    skipped: List[SkippedRow]
    total_imported: int
    total_skipped: int


# --- Activities ---
class ActivityCreate(CamelModel):
    date: Optional[date_type] = None
    type: ActivityType
    client_id: Optional[str] = None
    description: str = Field(min_length=1)
    start_time: str = Field(pattern=r"^\d{2}:\d{2}(:\d{2})?$")
    end_time: str = Field(pattern=r"^\d{2}:\d{2}(:\d{2})?$")
    location: Optional[str] = None
    proof_url: Optional[str] = None
    status: ActivityStatus = ActivityStatus.DONE


class ActivityOut(CamelModel):
    id: str
    date: date_type
    marketing_id: str
    type: ActivityType
    client_id: Optional[str] = None
    description: str
    start_time: str
    end_time: str
    location: Optional[str] = None
    proof_url: Optional[str] = None
    status: ActivityStatus


# --- EOD Reports ---
class ProgressUpdateIn(CamelModel):
    client_id: str
    activity: str = ""
    prev_status: ClientStatus
    new_status: ClientStatus
    result: str = ""


class ReportSubmit(CamelModel):
    date: Optional[date_type] = None
    summary: str = ""
    progress_updates: List[ProgressUpdateIn] = []
    new_leads: int = Field(default=0, ge=0)
    follow_ups: int = Field(default=0, ge=0)
    deals_today: int = Field(default=0, ge=0)
    deal_value: float = Field(default=0, ge=0)
    constraints: str = ""
    support_needed: str = ""
    plan_tomorrow: str = ""


class ReportReview(CamelModel):
    id: str
    status: ReportStatus


class ProgressUpdateOut(CamelModel):
    client_id: Optional[str] = None
    activity: str
    prev_status: ClientStatus
    new_status: ClientStatus
    result: str


class ReportOut(CamelModel):
    id: str
    date: date_type
    marketing_id: str
    summary: str
    progress_updates: List[ProgressUpdateOut]
    new_leads: int
    follow_ups: int
    deals_today: int
    deal_value: float
    constraints: str
    support_needed: str
    plan_tomorrow: str
    status: ReportStatus
    submitted_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None


# --- Audit ---
class ChecklistItemOut(CamelModel):
    id: int
    client_id: str
    item_key: ChecklistItemKey
    label: str
    is_checked: bool
    checked_at: Optional[datetime] = None
    checked_by: Optional[str] = None


class ChecklistToggle(CamelModel):
    id: int
    is_checked: bool = False


class AssignmentRequest(CamelModel):
    client_id: str
    assignee: str = Field(min_length=1)


class AssignmentResult(CamelModel):
    client: ClientOut
    notifications: dict


class AuditQueueItem(CamelModel):
    client: ClientOut
    checked: int
    total: int
