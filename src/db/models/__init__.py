"""Database models"""

from src.db.models.sequence_counter import SequenceCounter
from src.db.models.lawyer import Lawyer
from src.db.models.legal_case import LegalCase
from src.db.models.case_assignment import CaseAssignment
from src.db.models.case_timeline_event import CaseTimelineEvent
from src.db.models.legal_notice import LegalNotice
from src.db.models.notice_acknowledgement import NoticeAcknowledgement
from src.db.models.notice_status_log import NoticeStatusLog
from src.db.models.notice_dispatch_log import NoticeDispatchLog

__all__ = [
    "SequenceCounter",
    "Lawyer",
    "LegalCase",
    "CaseAssignment",
    "CaseTimelineEvent",
    "LegalNotice",
    "NoticeAcknowledgement",
    "NoticeStatusLog",
    "NoticeDispatchLog",
]
