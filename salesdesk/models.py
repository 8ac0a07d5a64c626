# models.py
import enum
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from salesdesk.utils import utcnow

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


class Role(str, enum.Enum):
    MARKETER = "MARKETER"
    SUPERVISOR = "SUPERVISOR"
    MANAGER = "MANAGER"
    AUDITOR = "AUDITOR"


class ClientStatus(str, enum.Enum):
    NEW = "NEW"
    FOLLOW_UP = "FOLLOW_UP"
    VISIT = "VISIT"
    PRESENTASI = "PRESENTASI"
    PENAWARAN = "PENAWARAN"
    NEGOSIASI = "NEGOSIASI"
    DEAL = "DEAL"
    LOST = "LOST"
    MAINTENANCE = "MAINTENANCE"


class PpnType(str, enum.Enum):
    INCLUDE = "INCLUDE"
    EXCLUDE = "EXCLUDE"


class ActivityType(str, enum.Enum):
    CHAT_DM = "CHAT_DM"
    CALL = "CALL"
    VISIT = "VISIT"
    MEETING = "MEETING"
    POSTING = "POSTING"


class ActivityStatus(str, enum.Enum):
    DONE = "DONE"
    PENDING = "PENDING"
    CANCEL = "CANCEL"


class ReportStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REVISION = "REVISION"


class ChecklistItemKey(str, enum.Enum):
    DOCUMENT_COMPLETENESS = "DOCUMENT_COMPLETENESS"
    PAYMENT_VERIFICATION = "PAYMENT_VERIFICATION"
    BOOKKEEPING_ENTRY = "BOOKKEEPING_ENTRY"
    ASSIGNMENT_LETTER = "ASSIGNMENT_LETTER"
    WORK_IN_PROGRESS = "WORK_IN_PROGRESS"
    RESULT_REVIEW = "RESULT_REVIEW"
    DELIVERED = "DELIVERED"


class User(Base):
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=_uuid)
    username = Column(String(50), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=False)
    role = Column(Enum(Role), nullable=False)
    # Back-reference to the supervising user, never ownership.
    supervisor_id = Column(String(36), ForeignKey('users.id'), nullable=True, index=True)
    avatar = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class Client(Base):
    __tablename__ = 'clients'

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    industry = Column(String(100), nullable=False, default="-")
    pic_name = Column(String(100), nullable=False, default="-")
    phone = Column(String(50), nullable=False, default="")
    email = Column(String(120), nullable=False, default="")
    address = Column(Text, nullable=False, default="")
    marketing_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    status = Column(Enum(ClientStatus), nullable=False, default=ClientStatus.NEW)
    estimated_value = Column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)
    service_type = Column(String(100), nullable=False, default="")
    year_work = Column(Integer, nullable=True)
    year_book = Column(Integer, nullable=True)
    dpp = Column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)
    ppn_type = Column(Enum(PpnType), nullable=False, default=PpnType.EXCLUDE)
    dp_paid = Column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)
    auditor_assignee = Column(String(100), nullable=True)
    last_update = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    @property
    def audit_eligible(self) -> bool:
        return self.status == ClientStatus.DEAL or (self.dp_paid or 0) > 0


class Activity(Base):
    __tablename__ = 'activities'

    id = Column(String(36), primary_key=True, default=_uuid)
    date = Column(Date, nullable=False, index=True)
    marketing_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    type = Column(Enum(ActivityType), nullable=False)
    client_id = Column(String(36), ForeignKey('clients.id', ondelete='SET NULL'), nullable=True)
    description = Column(Text, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    location = Column(String(100), nullable=True)
    proof_url = Column(String(255), nullable=True)
    status = Column(Enum(ActivityStatus), nullable=False, default=ActivityStatus.DONE)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class EODReport(Base):
    __tablename__ = 'eod_reports'
    __table_args__ = (
        UniqueConstraint('date', 'marketing_id', name='uq_eod_reports_date_marketing'),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    date = Column(Date, nullable=False, index=True)
    marketing_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    summary = Column(Text, nullable=False)
    new_leads = Column(Integer, nullable=False, default=0)
    follow_ups = Column(Integer, nullable=False, default=0)
    deals_today = Column(Integer, nullable=False, default=0)
    deal_value = Column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)
    constraints = Column('constraints_notes', Text, nullable=False, default="")
    support_needed = Column(Text, nullable=False, default="")
    plan_tomorrow = Column(Text, nullable=False, default="")
    status = Column(Enum(ReportStatus), nullable=False, default=ReportStatus.DRAFT)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(String(36), ForeignKey('users.id'), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    progress_updates = relationship(
        "ClientProgressUpdate",
        order_by="ClientProgressUpdate.id",
        passive_deletes=True,
    )


class ClientProgressUpdate(Base):
    __tablename__ = 'client_progress_updates'

    id = Column(Integer, primary_key=True, autoincrement=True)
    report_id = Column(String(36), ForeignKey('eod_reports.id', ondelete='CASCADE'), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey('clients.id', ondelete='SET NULL'), nullable=True)
    activity = Column(Text, nullable=False, default="")
    prev_status = Column(Enum(ClientStatus), nullable=False)
    new_status = Column(Enum(ClientStatus), nullable=False)
    result = Column(Text, nullable=False, default="")


class AuditChecklistItem(Base):
    __tablename__ = 'audit_checklist'
    __table_args__ = (
        UniqueConstraint('client_id', 'item_key', name='uq_audit_checklist_client_item'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(String(36), ForeignKey('clients.id', ondelete='CASCADE'), nullable=False, index=True)
    item_key = Column(Enum(ChecklistItemKey), nullable=False)
    is_checked = Column(Boolean, nullable=False, default=False)
    checked_at = Column(DateTime(timezone=True), nullable=True)
    checked_by = Column(String(36), ForeignKey('users.id'), nullable=True)
