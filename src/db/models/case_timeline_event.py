"""
CaseTimelineEvent model
"""
from sqlalchemy import Column, BigInteger, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from src.db.base import BaseModel, PrimaryKey


class CaseTimelineEvent(BaseModel):
    """Case history"""
    __tablename__ = "case_timeline_event"
    
    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    case_id = Column(BigInteger, ForeignKey("legal_case.case_id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(String(30), nullable=False)
    description = Column(Text)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    
    # Relationships
    case = relationship("LegalCase", back_populates="timeline")
