"""
LegalCase model
"""
from sqlalchemy import Column, BigInteger, String, Text, Date, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from src.db.base import BaseModel, PrimaryKey


class LegalCase(BaseModel):
    """Legal case opened against a delinquent loan account"""
    __tablename__ = "legal_case"
    __table_args__ = (
        Index("ix_legal_case_account", "loan_account_number"),
    )
    
    case_id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    case_code = Column(String(40), nullable=False, unique=True)
    loan_account_number = Column(String(50), nullable=False)
    borrower_name = Column(String(255))
    case_type = Column(String(30), nullable=False)
    court_name = Column(String(255), nullable=False)
    case_filed_date = Column(Date, nullable=False)
    case_status = Column(String(30), nullable=False, default="Filed")
    filing_jurisdiction = Column(String(100))
    current_lawyer_id = Column(BigInteger, ForeignKey("lawyer.lawyer_id"))
    next_hearing_date = Column(Date)
    last_hearing_outcome = Column(Text)
    case_closure_date = Column(Date)
    outcome_summary = Column(Text)
    created_by = Column(String(100))
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    # Relationships
    current_lawyer = relationship("Lawyer")
    assignments = relationship("CaseAssignment", back_populates="case", cascade="all, delete-orphan")
    timeline = relationship("CaseTimelineEvent", back_populates="case", cascade="all, delete-orphan")
