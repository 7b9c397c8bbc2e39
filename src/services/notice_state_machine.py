"""
Legal notice lifecycle

All status changes go through next_status(); a (status, event) pair missing
from TRANSITIONS is rejected with InvalidStateError.

    Draft --document_generated--> Generated
    Draft/Generated --dispatch_succeeded--> Sent
    Draft/Generated --dispatch_failed--> Failed
    Sent --ack_refused--> Refused
    Sent --ack_received--> Pending Verification
    Pending Verification --verification_confirmed--> Acknowledged
    Sent --expired--> Expired
"""
from datetime import date, datetime, timedelta
from typing import Dict, FrozenSet, List, Optional, Tuple, Union
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from config.settings import settings
from src.db.models.legal_notice import LegalNotice
from src.db.models.notice_acknowledgement import NoticeAcknowledgement
from src.services.audit_logger import AuditLogger
from src.services.sequence_allocator import SequenceAllocator
from src.utils.clock import Clock, SystemClock
from src.utils.constants import (
    ACKNOWLEDGEMENT_PREFIX,
    AcknowledgedBy,
    AcknowledgementMode,
    NoticeEvent,
    NoticeStatus,
    NoticeType,
)
from src.utils.exceptions import (
    DuplicateAcknowledgementError,
    InvalidDateRangeError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from src.utils.helpers import as_date, coerce_enum
from src.utils.logger import get_logger

logger = get_logger(__name__)


TRANSITIONS: Dict[Tuple[NoticeStatus, NoticeEvent], NoticeStatus] = {
    (NoticeStatus.DRAFT, NoticeEvent.DOCUMENT_GENERATED): NoticeStatus.GENERATED,
    (NoticeStatus.DRAFT, NoticeEvent.DISPATCH_SUCCEEDED): NoticeStatus.SENT,
    (NoticeStatus.GENERATED, NoticeEvent.DISPATCH_SUCCEEDED): NoticeStatus.SENT,
    (NoticeStatus.DRAFT, NoticeEvent.DISPATCH_FAILED): NoticeStatus.FAILED,
    (NoticeStatus.GENERATED, NoticeEvent.DISPATCH_FAILED): NoticeStatus.FAILED,
    (NoticeStatus.SENT, NoticeEvent.ACK_REFUSED): NoticeStatus.REFUSED,
    (NoticeStatus.SENT, NoticeEvent.ACK_RECEIVED): NoticeStatus.PENDING_VERIFICATION,
    (NoticeStatus.PENDING_VERIFICATION, NoticeEvent.VERIFICATION_CONFIRMED): NoticeStatus.ACKNOWLEDGED,
    (NoticeStatus.SENT, NoticeEvent.EXPIRED): NoticeStatus.EXPIRED,
}

TERMINAL_STATUSES: FrozenSet[NoticeStatus] = frozenset({
    NoticeStatus.ACKNOWLEDGED,
    NoticeStatus.REFUSED,
    NoticeStatus.EXPIRED,
    NoticeStatus.FAILED,
})

INITIAL_STATUSES: FrozenSet[NoticeStatus] = frozenset({
    NoticeStatus.DRAFT,
    NoticeStatus.GENERATED,
})


def next_status(
    current: Union[NoticeStatus, str],
    event: Union[NoticeEvent, str]
) -> NoticeStatus:
    """
    Single transition function
    
    Args:
        current: current status
        event: event to apply
    
    Returns:
        new status
    
    Raises:
        InvalidStateError: transition not defined
    """
    try:
        current = NoticeStatus(current)
        event = NoticeEvent(event)
    except ValueError:
        raise InvalidStateError(current, event)
    
    target = TRANSITIONS.get((current, event))
    if target is None:
        raise InvalidStateError(current, event)
    return target


def allowed_events(current: Union[NoticeStatus, str]) -> List[NoticeEvent]:
    current = NoticeStatus(current)
    return [event for (status, event) in TRANSITIONS if status == current]


def is_terminal(status: Union[NoticeStatus, str]) -> bool:
    return NoticeStatus(status) in TERMINAL_STATUSES


def acknowledgement_event(acknowledged_by: Union[AcknowledgedBy, str]) -> NoticeEvent:
    """A refusal closes the notice; anything else awaits verification"""
    if AcknowledgedBy(acknowledged_by) == AcknowledgedBy.REFUSED:
        return NoticeEvent.ACK_REFUSED
    return NoticeEvent.ACK_RECEIVED


def classify_notice_type(dpd_days: int, threshold: Optional[int] = None) -> NoticeType:
    """Legal at or above the DPD threshold, Pre-Legal below it"""
    threshold = settings.legal_notice_dpd_threshold if threshold is None else threshold
    return NoticeType.LEGAL if dpd_days >= threshold else NoticeType.PRE_LEGAL


class NoticeLifecycle:
    """Applies transitions to stored notices and records acknowledgements"""
    
    def __init__(
        self,
        allocator: SequenceAllocator,
        clock: Optional[Clock] = None,
        audit: Optional[AuditLogger] = None,
        future_tolerance_days: Optional[int] = None,
        legal_dpd_threshold: Optional[int] = None
    ):
        self.allocator = allocator
        self.clock = clock or SystemClock(settings.business_timezone)
        self.audit = audit or AuditLogger(allocator.db)
        self.future_tolerance_days = (
            settings.acknowledgement_future_tolerance_days
            if future_tolerance_days is None else future_tolerance_days
        )
        self.legal_dpd_threshold = (
            settings.legal_notice_dpd_threshold
            if legal_dpd_threshold is None else legal_dpd_threshold
        )
    
    def load_notice(self, session: Session, notice_id: int, lock: bool = False) -> LegalNotice:
        stmt = select(LegalNotice).where(LegalNotice.notice_id == notice_id)
        if lock:
            stmt = stmt.with_for_update()
        notice = session.execute(stmt).scalar_one_or_none()
        if notice is None:
            raise NotFoundError("notice", notice_id)
        return notice
    
    def apply_event(
        self,
        session: Session,
        notice: LegalNotice,
        event: NoticeEvent,
        actor: Optional[str] = None
    ) -> NoticeStatus:
        """Move a notice along one transition and audit it"""
        previous = notice.status
        target = next_status(previous, event)
        notice.status = target.value
        notice.updated_at = datetime.utcnow()
        session.flush()
        
        self.audit.log_notice_transition(
            notice.notice_id, previous, target.value, NoticeEvent(event).value, actor,
            db_session=session
        )
        logger.info(f"Notice {notice.notice_code}: {previous} -> {target.value} ({NoticeEvent(event).value})")
        return target
    
    def claim_dispatch(self, session: Session, notice_id: int) -> LegalNotice:
        """
        Mark a Draft or Generated notice as being dispatched

        Only one caller can claim a notice, so the borrower is messaged once
        even when dispatches of the same notice race. A claimed notice is
        never claimed again, whatever the outcome of its sends.

        Raises:
            NotFoundError: no such notice
            InvalidStateError: not Draft/Generated, or already claimed
        """
        result = session.execute(
            update(LegalNotice)
            .where(
                LegalNotice.notice_id == notice_id,
                LegalNotice.status.in_([status.value for status in INITIAL_STATUSES]),
                LegalNotice.dispatch_started_at.is_(None),
            )
            .values(dispatch_started_at=self.clock.now())
            .execution_options(synchronize_session=False)
        )
        notice = self.load_notice(session, notice_id)
        if result.rowcount != 1:
            if notice.dispatch_started_at is not None and NoticeStatus(notice.status) in INITIAL_STATUSES:
                raise InvalidStateError(
                    notice.status, NoticeEvent.DISPATCH_SUCCEEDED,
                    f"Notice {notice.notice_code} is already being dispatched"
                )
            raise InvalidStateError(notice.status, NoticeEvent.DISPATCH_SUCCEEDED)
        return notice
    
    def validate_acknowledgement(
        self,
        session: Session,
        notice_id: int,
        acknowledgement_date: Union[date, datetime, str]
    ) -> LegalNotice:
        """
        Check that notice_id can take an acknowledgement dated acknowledgement_date
        
        Checks run in this order: notice exists, no acknowledgement yet,
        notice is Sent, date within [generation date, today + tolerance].
        The notice row stays locked for the rest of the transaction.
        
        Raises:
            NotFoundError, DuplicateAcknowledgementError, InvalidStateError,
            InvalidDateRangeError
        """
        notice = self.load_notice(session, notice_id, lock=True)
        
        existing = session.execute(
            select(NoticeAcknowledgement).where(NoticeAcknowledgement.notice_id == notice_id)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateAcknowledgementError(notice_id, existing.acknowledgement_code)
        
        if notice.status != NoticeStatus.SENT.value:
            raise InvalidStateError(
                notice.status,
                NoticeEvent.ACK_RECEIVED,
                f"Notice {notice.notice_code} is '{notice.status}'; only Sent notices can be acknowledged"
            )
        
        ack_date = self._to_date(acknowledgement_date)
        lower = as_date(notice.notice_generation_date)
        upper = self.clock.today() + timedelta(days=self.future_tolerance_days)
        if ack_date < lower:
            raise InvalidDateRangeError(
                f"acknowledgement date {ack_date} is before the notice generation date {lower}",
                "acknowledgement_date", lower, upper
            )
        if ack_date > upper:
            raise InvalidDateRangeError(
                f"acknowledgement date {ack_date} is in the future",
                "acknowledgement_date", lower, upper
            )
        return notice
    
    def record_acknowledgement(
        self,
        session: Session,
        notice_id: int,
        acknowledged_by: Union[AcknowledgedBy, str],
        acknowledgement_date: Union[date, datetime, str],
        acknowledgement_mode: Union[AcknowledgementMode, str],
        relationship_to_borrower: Optional[str] = None,
        borrower_name: Optional[str] = None,
        remarks: Optional[str] = None,
        proof_path: Optional[str] = None,
        captured_by: Optional[str] = None
    ) -> NoticeAcknowledgement:
        """
        Persist an acknowledgement and move the notice in the same transaction
        
        Returns:
            the new acknowledgement (status Refused or Pending Verification)
        """
        acknowledged_by = coerce_enum(AcknowledgedBy, acknowledged_by, "acknowledged_by")
        mode = coerce_enum(AcknowledgementMode, acknowledgement_mode, "acknowledgement_mode")
        notice = self.validate_acknowledgement(session, notice_id, acknowledgement_date)
        
        event = acknowledgement_event(acknowledged_by)
        target = next_status(notice.status, event)
        allocation = self.allocator.allocate(ACKNOWLEDGEMENT_PREFIX, db_session=session)
        
        acknowledgement = NoticeAcknowledgement(
            acknowledgement_code=allocation.formatted_id,
            notice_id=notice.notice_id,
            loan_account_number=notice.loan_account_number,
            borrower_name=borrower_name,
            acknowledged_by=acknowledged_by.value,
            relationship_to_borrower=relationship_to_borrower,
            acknowledgement_date=self._to_date(acknowledgement_date),
            acknowledgement_mode=mode.value,
            proof_path=proof_path,
            remarks=remarks,
            notice_type=classify_notice_type(notice.dpd_days, self.legal_dpd_threshold).value,
            status=target.value,
            captured_by=captured_by,
        )
        try:
            with session.begin_nested():
                session.add(acknowledgement)
        except IntegrityError:
            # lost a race with a concurrent acknowledgement of the same notice
            raise DuplicateAcknowledgementError(notice_id)
        
        self.apply_event(session, notice, event, captured_by)
        logger.info(
            f"Acknowledgement {acknowledgement.acknowledgement_code} recorded for "
            f"{notice.notice_code} ({acknowledged_by.value} -> {target.value})"
        )
        return acknowledgement
    
    def verify_acknowledgement(
        self,
        session: Session,
        acknowledgement_id: int,
        verified_by: Optional[str] = None
    ) -> NoticeAcknowledgement:
        """Confirm a Pending Verification acknowledgement"""
        acknowledgement = session.execute(
            select(NoticeAcknowledgement)
            .where(NoticeAcknowledgement.acknowledgement_id == acknowledgement_id)
            .with_for_update()
        ).scalar_one_or_none()
        if acknowledgement is None:
            raise NotFoundError("acknowledgement", acknowledgement_id)
        
        notice = self.load_notice(session, acknowledgement.notice_id, lock=True)
        target = self.apply_event(session, notice, NoticeEvent.VERIFICATION_CONFIRMED, verified_by)
        
        acknowledgement.status = target.value
        acknowledgement.verified_by = verified_by
        acknowledgement.verified_at = self.clock.now()
        session.flush()
        return acknowledgement
    
    def expire_overdue(
        self,
        session: Session,
        as_of: Optional[date] = None,
        actor: str = "scheduler"
    ) -> List[LegalNotice]:
        """
        Expire Sent notices whose expiry date is before as_of
        
        Notices without an expiry date never expire.
        """
        as_of = as_of or self.clock.today()
        overdue = session.execute(
            select(LegalNotice)
            .where(
                LegalNotice.status == NoticeStatus.SENT.value,
                LegalNotice.notice_expiry_date.is_not(None),
                LegalNotice.notice_expiry_date < as_of,
            )
            .order_by(LegalNotice.notice_id)
            .with_for_update()
        ).scalars().all()
        
        expired = []
        for notice in overdue:
            if notice.acknowledgement is not None:
                continue
            self.apply_event(session, notice, NoticeEvent.EXPIRED, actor)
            expired.append(notice)
        
        if expired:
            logger.info(f"Expired {len(expired)} notice(s) as of {as_of}")
        return expired
    
    @staticmethod
    def _to_date(value) -> date:
        try:
            return as_date(value)
        except (TypeError, ValueError):
            raise ValidationError(f"invalid date {value!r}", "acknowledgement_date")
