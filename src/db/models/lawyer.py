"""
Lawyer model
"""
from sqlalchemy import Column, String, Integer, Boolean, Numeric, DateTime, CheckConstraint, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from src.db.base import BaseModel, PrimaryKey


class Lawyer(BaseModel):
    """Legal counsel available for case assignment"""
    __tablename__ = "lawyer"
    __table_args__ = (
        CheckConstraint("max_case_load >= 1", name="check_max_case_load"),
        CheckConstraint("current_case_load >= 0", name="check_current_case_load"),
        CheckConstraint(
            "success_rate_percent >= 0 AND success_rate_percent <= 100",
            name="check_success_rate"
        ),
        CheckConstraint("experience_years >= 0", name="check_experience_years"),
        Index("ix_lawyer_eligibility", "is_active", "is_available", "current_case_load"),
    )
    
    lawyer_id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    lawyer_code = Column(String(40), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(20))
    bar_number = Column(String(50), nullable=False, unique=True)
    specialization = Column(String(200))
    jurisdiction = Column(String(100))
    experience_years = Column(Integer, nullable=False, default=0)
    lawyer_type = Column(String(20), nullable=False)
    max_case_load = Column(Integer, nullable=False, default=50)
    current_case_load = Column(Integer, nullable=False, default=0)
    success_rate_percent = Column(Numeric(5, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    is_available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    # Relationships
    assignments = relationship("CaseAssignment", back_populates="lawyer")
    
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
