"""
SequenceCounter model
"""
from sqlalchemy import Column, BigInteger, String, DateTime, CheckConstraint
from datetime import datetime
from src.db.base import BaseModel, PrimaryKey


class SequenceCounter(BaseModel):
    """Current allocation state for one (prefix, category, day) partition"""
    __tablename__ = "sequence_counter"
    __table_args__ = (
        CheckConstraint("current_value >= 0", name="check_sequence_non_negative"),
    )
    
    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    partition_key = Column(String(40), nullable=False, unique=True)
    prefix = Column(String(10), nullable=False)
    category_code = Column(String(10))
    date_stamp = Column(String(8), nullable=False, index=True)
    current_value = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
