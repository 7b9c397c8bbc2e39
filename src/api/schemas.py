"""
Request models
"""
from datetime import date
from typing import List, Optional
from pydantic import BaseModel, Field
from src.utils.constants import (
    AcknowledgedBy,
    AcknowledgementMode,
    CaseStatus,
    CaseType,
    CommunicationMode,
    LawyerType,
    NoticeStatus,
    TriggerType,
)


class LawyerCreateRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=255)
    bar_number: str = Field(..., min_length=1, max_length=50)
    lawyer_type: LawyerType
    phone: Optional[str] = Field(None, max_length=20)
    specialization: Optional[str] = Field(None, max_length=200)
    jurisdiction: Optional[str] = Field(None, max_length=100)
    experience_years: int = Field(0, ge=0)
    max_case_load: int = Field(50, ge=1)
    success_rate_percent: float = Field(0, ge=0, le=100)


class AvailabilityRequest(BaseModel):
    is_available: bool


class CaseCreateRequest(BaseModel):
    loan_account_number: str = Field(..., min_length=1, max_length=50)
    case_type: CaseType
    court_name: str = Field(..., min_length=1, max_length=255)
    case_filed_date: date
    filing_jurisdiction: Optional[str] = Field(None, max_length=100)
    borrower_name: Optional[str] = Field(None, max_length=255)
    case_status: CaseStatus = CaseStatus.FILED
    next_hearing_date: Optional[date] = None
    category_code: Optional[str] = None
    created_by: Optional[str] = None


class AssignLawyerRequest(BaseModel):
    specialization: Optional[str] = None
    jurisdiction: Optional[str] = None
    lawyer_id: Optional[int] = None
    reason: Optional[str] = Field(None, max_length=255)
    assigned_by: Optional[str] = None


class CaseStatusRequest(BaseModel):
    case_status: CaseStatus
    next_hearing_date: Optional[date] = None
    last_hearing_outcome: Optional[str] = None


class CloseCaseRequest(BaseModel):
    closure_date: Optional[date] = None
    outcome_summary: Optional[str] = None
    case_status: CaseStatus = CaseStatus.CLOSED


class NoticeCreateRequest(BaseModel):
    loan_account_number: str = Field(..., min_length=1, max_length=50)
    dpd_days: int = Field(..., ge=0)
    trigger_type: TriggerType
    template_ids: List[str] = Field(..., min_length=1)
    communication_modes: List[CommunicationMode] = Field(..., min_length=1)
    notice_expiry_date: Optional[date] = None
    legal_entity_name: Optional[str] = Field(None, max_length=255)
    issued_by: Optional[str] = None
    acknowledgement_required: bool = True
    notice_status: NoticeStatus = NoticeStatus.DRAFT
    remarks: Optional[str] = Field(None, max_length=250)
    case_id: Optional[int] = None
    dispatch: bool = True


class NoticePreviewRequest(BaseModel):
    loan_account_number: str
    template_ids: List[str] = Field(..., min_length=1)
    dpd_days: Optional[int] = Field(None, ge=0)
    legal_entity_name: Optional[str] = None


class NoticeGeneratedRequest(BaseModel):
    document_path: Optional[str] = None
    actor: Optional[str] = None


class ExpireNoticesRequest(BaseModel):
    as_of: Optional[date] = None


class AcknowledgementCreateRequest(BaseModel):
    notice_id: int
    acknowledged_by: AcknowledgedBy
    acknowledgement_date: date
    acknowledgement_mode: AcknowledgementMode
    relationship_to_borrower: Optional[str] = Field(None, max_length=100)
    remarks: Optional[str] = Field(None, max_length=500)
    captured_by: Optional[str] = None


class VerifyAcknowledgementRequest(BaseModel):
    verified_by: Optional[str] = None
