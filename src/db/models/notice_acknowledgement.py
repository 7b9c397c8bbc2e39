"""
NoticeAcknowledgement model
"""
from sqlalchemy import Column, BigInteger, String, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from src.db.base import BaseModel, PrimaryKey


class NoticeAcknowledgement(BaseModel):
    """Evidence that a notice reached, or was refused by, its recipient"""
    __tablename__ = "notice_acknowledgement"
    
    acknowledgement_id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    acknowledgement_code = Column(String(40), nullable=False, unique=True)
    notice_id = Column(BigInteger, ForeignKey("legal_notice.notice_id"), nullable=False, unique=True)
    loan_account_number = Column(String(50), nullable=False)
    borrower_name = Column(String(255))
    acknowledged_by = Column(String(30), nullable=False)
    relationship_to_borrower = Column(String(100))
    acknowledgement_date = Column(Date, nullable=False)
    acknowledgement_mode = Column(String(30), nullable=False)
    proof_path = Column(String(500))
    remarks = Column(String(500))
    notice_type = Column(String(20), nullable=False)
    status = Column(String(30), nullable=False)
    captured_by = Column(String(100))
    verified_by = Column(String(100))
    verified_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    # Relationships
    notice = relationship("LegalNotice", back_populates="acknowledgement")
