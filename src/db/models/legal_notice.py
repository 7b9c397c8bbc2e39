"""
LegalNotice model
"""
from sqlalchemy import Column, BigInteger, String, Integer, Boolean, Date, DateTime, JSON, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from src.db.base import BaseModel, PrimaryKey


class LegalNotice(BaseModel):
    """Pre-legal / legal notice issued against a loan account"""
    __tablename__ = "legal_notice"
    __table_args__ = (
        CheckConstraint("dpd_days >= 0", name="check_dpd_days"),
        Index("ix_legal_notice_duplicate", "loan_account_number", "dpd_days", "notice_generation_date"),
        Index("ix_legal_notice_status_expiry", "status", "notice_expiry_date"),
    )
    
    notice_id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    notice_code = Column(String(40), nullable=False, unique=True)
    loan_account_number = Column(String(50), nullable=False)
    case_id = Column(BigInteger, ForeignKey("legal_case.case_id"))
    dpd_days = Column(Integer, nullable=False)
    trigger_type = Column(String(30), nullable=False)
    template_ids = Column(JSON, nullable=False)
    communication_modes = Column(JSON, nullable=False)
    notice_generation_date = Column(DateTime, nullable=False)
    notice_expiry_date = Column(Date)
    legal_entity_name = Column(String(255))
    issued_by = Column(String(100))
    acknowledgement_required = Column(Boolean, nullable=False, default=True)
    status = Column(String(30), nullable=False, default="Draft")
    dispatch_started_at = Column(DateTime)
    document_path = Column(String(500))
    remarks = Column(String(250))
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    # Relationships
    acknowledgement = relationship("NoticeAcknowledgement", back_populates="notice", uselist=False)
    status_logs = relationship("NoticeStatusLog", back_populates="notice", cascade="all, delete-orphan")
    dispatch_logs = relationship("NoticeDispatchLog", back_populates="notice", cascade="all, delete-orphan")
