"""
Duplicate notice suppression

A notice for the same (loan account, DPD) may not be generated again within
the suppression window. The window is inclusive: a notice generated exactly
window_days ago still blocks a new one.
"""
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import select
from sqlalchemy.orm import Session
from config.settings import settings
from src.db.models.legal_notice import LegalNotice
from src.utils.clock import Clock, SystemClock
from src.utils.exceptions import DuplicateNoticeError
from src.utils.logger import get_logger

logger = get_logger(__name__)


class DuplicateNoticeGuard:
    """Rejects notices that repeat a recent one"""
    
    def __init__(self, clock: Optional[Clock] = None, window_days: Optional[int] = None):
        self.clock = clock or SystemClock(settings.business_timezone)
        self.window_days = settings.duplicate_notice_window_days if window_days is None else window_days
    
    def window_start(self, now: Optional[datetime] = None) -> datetime:
        """Earliest generation time that still counts as a duplicate (start of day)"""
        now = now or self.clock.now()
        start = now.date() - timedelta(days=self.window_days)
        return datetime(start.year, start.month, start.day)
    
    def find_recent(
        self,
        session: Session,
        loan_account_number: str,
        dpd_days: int,
        now: Optional[datetime] = None
    ) -> Optional[LegalNotice]:
        return session.execute(
            select(LegalNotice)
            .where(
                LegalNotice.loan_account_number == loan_account_number,
                LegalNotice.dpd_days == dpd_days,
                LegalNotice.notice_generation_date >= self.window_start(now),
            )
            .order_by(LegalNotice.notice_generation_date.desc())
            .limit(1)
        ).scalar_one_or_none()
    
    def check_duplicate(
        self,
        session: Session,
        loan_account_number: str,
        dpd_days: int,
        now: Optional[datetime] = None
    ) -> None:
        """
        Raise if an equivalent notice is inside the window
        
        Args:
            session: DB session (same transaction as the notice insert)
            loan_account_number: account
            dpd_days: DPD bucket
            now: reference time (default: clock)
        
        Raises:
            DuplicateNoticeError: a recent notice exists
        """
        existing = self.find_recent(session, loan_account_number, dpd_days, now)
        if existing is not None:
            logger.warning(
                f"Duplicate notice suppressed for {loan_account_number} (DPD {dpd_days}); "
                f"{existing.notice_code} generated {existing.notice_generation_date:%Y-%m-%d}"
            )
            raise DuplicateNoticeError(
                loan_account_number, dpd_days, self.window_days, existing.notice_code
            )
