"""
NoticeStatusLog model
"""
from sqlalchemy import Column, BigInteger, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from src.db.base import BaseModel, PrimaryKey


class NoticeStatusLog(BaseModel):
    """Notice status transition log"""
    __tablename__ = "notice_status_log"
    
    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    notice_id = Column(BigInteger, ForeignKey("legal_notice.notice_id", ondelete="CASCADE"), nullable=False, index=True)
    from_status = Column(String(30))
    to_status = Column(String(30), nullable=False)
    event = Column(String(50), nullable=False)
    actor = Column(String(100))
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    
    # Relationships
    notice = relationship("LegalNotice", back_populates="status_logs")
