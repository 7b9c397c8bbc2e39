"""
NoticeDispatchLog model
"""
from sqlalchemy import Column, BigInteger, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from src.db.base import BaseModel, PrimaryKey


class NoticeDispatchLog(BaseModel):
    """One row per channel delivery attempt"""
    __tablename__ = "notice_dispatch_log"
    
    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    notice_id = Column(BigInteger, ForeignKey("legal_notice.notice_id", ondelete="CASCADE"), nullable=False, index=True)
    channel = Column(String(30), nullable=False)
    recipient = Column(String(255))
    success = Column(Boolean, nullable=False)
    provider_message_id = Column(String(100))
    error_message = Column(String(500))
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    
    # Relationships
    notice = relationship("LegalNotice", back_populates="dispatch_logs")
