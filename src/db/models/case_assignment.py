"""
CaseAssignment model
"""
from sqlalchemy import Column, BigInteger, String, Numeric, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from datetime import datetime
from src.db.base import BaseModel, PrimaryKey


class CaseAssignment(BaseModel):
    """Lawyer responsible for a case (one Active row per case)"""
    __tablename__ = "case_assignment"
    __table_args__ = (
        Index(
            "uq_case_assignment_active",
            "case_id",
            unique=True,
            sqlite_where=text("status = 'Active'"),
            postgresql_where=text("status = 'Active'"),
        ),
        Index("ix_case_assignment_lawyer", "lawyer_id", "status"),
    )
    
    assignment_id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    case_id = Column(BigInteger, ForeignKey("legal_case.case_id", ondelete="CASCADE"), nullable=False)
    lawyer_id = Column(BigInteger, ForeignKey("lawyer.lawyer_id"), nullable=False)
    assigned_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    workload_score_at_assignment = Column(Numeric(5, 2))
    status = Column(String(20), nullable=False, default="Active")
    assignment_reason = Column(String(255))
    assigned_by = Column(String(100))
    ended_at = Column(DateTime)
    
    # Relationships
    case = relationship("LegalCase", back_populates="assignments")
    lawyer = relationship("Lawyer", back_populates="assignments")
