"""
Best-effort audit trail

Status transitions, channel dispatch attempts and case timeline events are
recorded for operators. A failed audit write is logged and dropped; it never
fails the operation being audited. When the caller passes its session the row
is written inside a SAVEPOINT so a failed insert cannot poison the caller's
transaction.
"""
from typing import Optional
from sqlalchemy.orm import Session
from src.db.connection import DatabaseManager, db_manager
from src.db.models.case_timeline_event import CaseTimelineEvent
from src.db.models.notice_dispatch_log import NoticeDispatchLog
from src.db.models.notice_status_log import NoticeStatusLog
from src.utils.logger import get_logger

logger = get_logger(__name__)


class AuditLogger:
    """Writes audit rows without ever raising"""
    
    def __init__(self, db: Optional[DatabaseManager] = None):
        self.db = db or db_manager
    
    def _save(self, row, db_session: Optional[Session]) -> bool:
        try:
            if db_session is None:
                with self.db.get_db_session() as session:
                    session.add(row)
            else:
                with db_session.begin_nested():
                    db_session.add(row)
            return True
        except Exception as e:
            logger.error(f"Audit write failed ({type(row).__name__}): {str(e)}")
            return False
    
    def log_notice_transition(
        self,
        notice_id: int,
        from_status: Optional[str],
        to_status: str,
        event: str,
        actor: Optional[str] = None,
        db_session: Optional[Session] = None
    ) -> bool:
        """
        Record a notice status change
        
        Args:
            notice_id: notice
            from_status: previous status (None on creation)
            to_status: new status
            event: transition event
            actor: user or system component
            db_session: caller's session (None = own transaction)
        """
        return self._save(
            NoticeStatusLog(
                notice_id=notice_id,
                from_status=from_status,
                to_status=to_status,
                event=event,
                actor=actor,
            ),
            db_session
        )
    
    def log_dispatch(
        self,
        notice_id: int,
        channel: str,
        recipient: Optional[str],
        success: bool,
        provider_message_id: Optional[str] = None,
        error_message: Optional[str] = None,
        db_session: Optional[Session] = None
    ) -> bool:
        """Record one channel delivery attempt"""
        return self._save(
            NoticeDispatchLog(
                notice_id=notice_id,
                channel=channel,
                recipient=recipient,
                success=success,
                provider_message_id=provider_message_id,
                error_message=(error_message or "")[:500] or None,
            ),
            db_session
        )
    
    def log_case_event(
        self,
        case_id: int,
        event_type: str,
        description: Optional[str] = None,
        db_session: Optional[Session] = None
    ) -> bool:
        """Append to a case timeline"""
        return self._save(
            CaseTimelineEvent(
                case_id=case_id,
                event_type=event_type,
                description=description,
            ),
            db_session
        )
