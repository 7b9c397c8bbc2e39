"""
Case workflow orchestration

Entry points for the legal-collections lifecycle: lawyers, cases, lawyer
assignment, notices and acknowledgements. Each operation runs in one
database transaction. Identifier allocation joins that transaction, so a
rejected or cancelled operation never consumes a sequence number.
Notification dispatch is external I/O and runs after the notice row is
committed.
"""
import re
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Union
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from config.settings import settings
from src.db.connection import DatabaseManager, db_manager
from src.db.models.case_assignment import CaseAssignment
from src.db.models.lawyer import Lawyer
from src.db.models.legal_case import LegalCase
from src.db.models.legal_notice import LegalNotice
from src.db.models.notice_acknowledgement import NoticeAcknowledgement
from src.services.audit_logger import AuditLogger
from src.services.collaborators import (
    DEFAULT_TEMPLATES,
    BorrowerLookup,
    BorrowerRecord,
    DispatchResult,
    DocumentStorage,
    InMemoryBorrowerLookup,
    LocalDocumentStorage,
    LoggingNotificationDispatch,
    NotificationDispatch,
    StaticTemplateRenderer,
    TemplateRenderer,
)
from src.services.duplicate_guard import DuplicateNoticeGuard
from src.services.lawyer_scoring import workload_summary
from src.services.lawyer_selector import LawyerSelector
from src.services.notice_state_machine import INITIAL_STATUSES, NoticeLifecycle
from src.services.request_context import RequestContext, checkpoint, storage_timeout
from src.services.sequence_allocator import SequenceAllocator, validate_code
from src.utils.clock import Clock, SystemClock
from src.utils.constants import (
    CASE_PREFIX,
    CLOSING_CASE_STATUSES,
    LAWYER_PREFIX,
    NOTICE_PREFIX,
    AcknowledgementMode,
    AcknowledgedBy,
    AssignmentStatus,
    CaseEventType,
    CaseStatus,
    CaseType,
    CommunicationMode,
    LawyerType,
    NoticeEvent,
    NoticeStatus,
    TriggerType,
)
from src.utils.exceptions import (
    InvalidDateRangeError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from src.utils.helpers import as_date, coerce_enum, normalize_text
from src.utils.logger import get_logger, log_execution_time

logger = get_logger(__name__)

_HTML_TAG_RE = re.compile(r"<[^>]*>")


def _required_text(value: Optional[str], field: str) -> str:
    if value is None or not normalize_text(value):
        raise ValidationError(f"{field} is required", field)
    return normalize_text(value)


def _to_date(value: Union[date, datetime, str, None], field: str) -> Optional[date]:
    if value is None:
        return None
    try:
        return as_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"invalid date {value!r}", field)


class CaseWorkflowService:
    """Legal-collections workflow"""

    def __init__(
        self,
        db: Optional[DatabaseManager] = None,
        clock: Optional[Clock] = None,
        borrower_lookup: Optional[BorrowerLookup] = None,
        dispatcher: Optional[NotificationDispatch] = None,
        storage: Optional[DocumentStorage] = None,
        renderer: Optional[TemplateRenderer] = None,
        selector: Optional[LawyerSelector] = None
    ):
        self.db = db or db_manager
        self.clock = clock or SystemClock(settings.business_timezone)
        self.borrower_lookup = borrower_lookup or InMemoryBorrowerLookup()
        self.dispatcher = dispatcher or LoggingNotificationDispatch()
        self.storage = storage or LocalDocumentStorage()
        self.renderer = renderer or StaticTemplateRenderer(DEFAULT_TEMPLATES)
        self.selector = selector or LawyerSelector()
        self.allocator = SequenceAllocator(self.db, self.clock)
        self.guard = DuplicateNoticeGuard(self.clock)
        self.audit = AuditLogger(self.db)
        self.lifecycle = NoticeLifecycle(self.allocator, self.clock, self.audit)

    # ------------------------------------------------------------------
    # Lawyers
    # ------------------------------------------------------------------

    @log_execution_time()
    def create_lawyer(
        self,
        first_name: str,
        last_name: str,
        email: str,
        bar_number: str,
        lawyer_type: Union[LawyerType, str],
        specialization: Optional[str] = None,
        jurisdiction: Optional[str] = None,
        experience_years: int = 0,
        max_case_load: int = 50,
        success_rate_percent: float = 0,
        phone: Optional[str] = None,
        context: Optional[RequestContext] = None
    ) -> Lawyer:
        """
        Register a lawyer under a new LAW code

        Raises:
            ValidationError: bad figures, or email/bar number already registered
        """
        lawyer_type = coerce_enum(LawyerType, lawyer_type, "lawyer_type")
        email = _required_text(email, "email")
        if "@" not in email:
            raise ValidationError("email is not valid", "email")
        if max_case_load is None or max_case_load < 1:
            raise ValidationError("max_case_load must be at least 1", "max_case_load")
        if experience_years is None or experience_years < 0:
            raise ValidationError("experience_years must not be negative", "experience_years")
        if success_rate_percent is None or not 0 <= success_rate_percent <= 100:
            raise ValidationError("success_rate_percent must be between 0 and 100", "success_rate_percent")

        with self.db.get_db_session(storage_timeout(context)) as session:
            checkpoint(context, "create_lawyer")
            allocation = self.allocator.allocate(LAWYER_PREFIX, db_session=session)
            lawyer = Lawyer(
                lawyer_code=allocation.formatted_id,
                first_name=_required_text(first_name, "first_name"),
                last_name=_required_text(last_name, "last_name"),
                email=email.lower(),
                phone=phone,
                bar_number=_required_text(bar_number, "bar_number"),
                specialization=specialization,
                jurisdiction=jurisdiction,
                experience_years=experience_years,
                lawyer_type=lawyer_type.value,
                max_case_load=max_case_load,
                current_case_load=0,
                success_rate_percent=success_rate_percent,
                is_active=True,
                is_available=True,
            )
            session.add(lawyer)
            try:
                session.flush()
            except IntegrityError:
                raise ValidationError(
                    "a lawyer with this email or bar number already exists", "email"
                )
            checkpoint(context, "create_lawyer")

        logger.info(f"Lawyer created: {lawyer.lawyer_code} ({lawyer.full_name})")
        return lawyer

    def get_lawyer(self, lawyer_id: int) -> Lawyer:
        with self.db.get_db_session() as session:
            lawyer = session.get(Lawyer, lawyer_id)
            if lawyer is None:
                raise NotFoundError("lawyer", lawyer_id)
            return lawyer

    def update_lawyer_availability(self, lawyer_id: int, is_available: bool) -> Lawyer:
        """Toggle whether a lawyer takes new cases"""
        with self.db.get_db_session() as session:
            lawyer = session.get(Lawyer, lawyer_id, with_for_update=True)
            if lawyer is None:
                raise NotFoundError("lawyer", lawyer_id)
            if is_available and not lawyer.is_active:
                raise InvalidStateError(
                    "inactive", "make_available",
                    f"Lawyer {lawyer.lawyer_code} is deactivated"
                )
            lawyer.is_available = bool(is_available)

        logger.info(f"Lawyer {lawyer.lawyer_code} availability set to {lawyer.is_available}")
        return lawyer

    def deactivate_lawyer(self, lawyer_id: int) -> Lawyer:
        """
        Soft-deactivate a lawyer

        Lawyers are never deleted; open assignments stay with them until the
        cases are reassigned or closed.
        """
        with self.db.get_db_session() as session:
            lawyer = session.get(Lawyer, lawyer_id, with_for_update=True)
            if lawyer is None:
                raise NotFoundError("lawyer", lawyer_id)
            lawyer.is_active = False
            lawyer.is_available = False
            open_cases = lawyer.current_case_load

        if open_cases:
            logger.warning(
                f"Lawyer {lawyer.lawyer_code} deactivated with {open_cases} open case(s)"
            )
        else:
            logger.info(f"Lawyer {lawyer.lawyer_code} deactivated")
        return lawyer

    def get_lawyer_workload(self, lawyer_id: int) -> Dict[str, Any]:
        """Load, capacity and score of one lawyer"""
        with self.db.get_db_session() as session:
            lawyer = session.get(Lawyer, lawyer_id)
            if lawyer is None:
                raise NotFoundError("lawyer", lawyer_id)
            active = session.execute(
                select(func.count(CaseAssignment.assignment_id)).where(
                    CaseAssignment.lawyer_id == lawyer_id,
                    CaseAssignment.status == AssignmentStatus.ACTIVE.value,
                )
            ).scalar_one()
            summary = workload_summary(lawyer)
            summary.update({
                "lawyer_id": lawyer.lawyer_id,
                "lawyer_code": lawyer.lawyer_code,
                "is_active": lawyer.is_active,
                "is_available": lawyer.is_available,
                "active_assignments": active,
            })
            return summary

    def list_candidates(
        self,
        specialization: Optional[str] = None,
        jurisdiction: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Ranked eligible lawyers with their workload figures"""
        with self.db.get_db_session() as session:
            return self.selector.rank_candidates(session, specialization, jurisdiction, limit)

    # ------------------------------------------------------------------
    # Cases
    # ------------------------------------------------------------------

    @log_execution_time()
    def create_case(
        self,
        loan_account_number: str,
        case_type: Union[CaseType, str],
        court_name: str,
        case_filed_date: Union[date, datetime, str],
        filing_jurisdiction: Optional[str] = None,
        borrower_name: Optional[str] = None,
        case_status: Union[CaseStatus, str] = CaseStatus.FILED,
        next_hearing_date: Union[date, datetime, str, None] = None,
        category_code: Optional[str] = None,
        created_by: Optional[str] = None,
        context: Optional[RequestContext] = None
    ) -> LegalCase:
        """
        Open a case under a new LC code

        Args:
            loan_account_number: delinquent account
            case_type: Civil, Criminal, Arbitration, 138 Bounce or SARFAESI
            court_name: court the case is filed in
            case_filed_date: filing date (not in the future)
            filing_jurisdiction: jurisdiction, also used to match lawyers
            borrower_name: defaults to the borrower directory entry
            case_status: initial status (closing statuses are not accepted)
            next_hearing_date: on or after the filing date
            category_code: optional category segment of the case code
            created_by: user
            context: request deadline / cancellation

        Returns:
            LegalCase
        """
        loan_account_number = _required_text(loan_account_number, "loan_account_number")
        case_type = coerce_enum(CaseType, case_type, "case_type")
        case_status = coerce_enum(CaseStatus, case_status, "case_status")
        court_name = _required_text(court_name, "court_name")
        if category_code is not None:
            validate_code(category_code, "category_code")
        if case_status in CLOSING_CASE_STATUSES:
            raise ValidationError(f"a case cannot be opened as '{case_status.value}'", "case_status")

        filed_date = _to_date(case_filed_date, "case_filed_date")
        if filed_date is None:
            raise ValidationError("case_filed_date is required", "case_filed_date")
        today = self.clock.today()
        if filed_date > today:
            raise InvalidDateRangeError(
                f"case filed date {filed_date} is in the future", "case_filed_date", None, today
            )
        hearing_date = _to_date(next_hearing_date, "next_hearing_date")
        if hearing_date is not None and hearing_date < filed_date:
            raise InvalidDateRangeError(
                "next hearing date is before the filing date", "next_hearing_date", filed_date, None
            )

        if borrower_name is None:
            borrower = self.borrower_lookup.get_by_loan_account(loan_account_number)
            borrower_name = borrower.borrower_name if borrower else None

        with self.db.get_db_session(storage_timeout(context)) as session:
            checkpoint(context, "create_case")
            allocation = self.allocator.allocate(CASE_PREFIX, category_code, db_session=session)
            case = LegalCase(
                case_code=allocation.formatted_id,
                loan_account_number=loan_account_number,
                borrower_name=borrower_name,
                case_type=case_type.value,
                court_name=court_name,
                case_filed_date=filed_date,
                case_status=case_status.value,
                filing_jurisdiction=filing_jurisdiction,
                next_hearing_date=hearing_date,
                created_by=created_by,
            )
            session.add(case)
            session.flush()
            self.audit.log_case_event(
                case.case_id, CaseEventType.CREATED.value,
                f"Case {case.case_code} filed at {court_name}", db_session=session
            )
            checkpoint(context, "create_case")

        logger.info(f"Case created: {case.case_code} for {loan_account_number}")
        return case

    def get_case(self, case_id: int) -> LegalCase:
        with self.db.get_db_session() as session:
            case = session.get(LegalCase, case_id)
            if case is None:
                raise NotFoundError("case", case_id)
            return case

    def get_case_timeline(self, case_id: int) -> List[Dict[str, Any]]:
        with self.db.get_db_session() as session:
            case = session.get(LegalCase, case_id)
            if case is None:
                raise NotFoundError("case", case_id)
            return [event.to_json() for event in sorted(case.timeline, key=lambda e: e.id)]

    @log_execution_time()
    def assign_lawyer(
        self,
        case_id: int,
        specialization: Optional[str] = None,
        jurisdiction: Optional[str] = None,
        lawyer_id: Optional[int] = None,
        reason: Optional[str] = None,
        assigned_by: Optional[str] = None,
        context: Optional[RequestContext] = None
    ) -> CaseAssignment:
        """
        Assign the best eligible lawyer (or lawyer_id) to a case

        An existing Active assignment is moved to Reassigned and its lawyer's
        load released, all in the same transaction.

        Raises:
            NotFoundError: case or lawyer missing
            InvalidStateError: case is closed
            NoEligibleLawyerError: nobody has capacity
        """
        with self.db.get_db_session(storage_timeout(context)) as session:
            checkpoint(context, "assign_lawyer")
            case = session.get(LegalCase, case_id, with_for_update=True)
            if case is None:
                raise NotFoundError("case", case_id)
            self._ensure_open(case, "assign_lawyer")

            had_lawyer = self.selector.active_assignment(session, case_id) is not None
            assignment = self.selector.assign(
                session,
                case_id,
                lawyer_id=lawyer_id,
                specialization=specialization,
                jurisdiction=jurisdiction,
                reason=reason,
                assigned_by=assigned_by,
                now=self.clock.now(),
            )
            lawyer = session.get(Lawyer, assignment.lawyer_id)
            event_type = CaseEventType.REASSIGNED if had_lawyer else CaseEventType.ASSIGNED
            self.audit.log_case_event(
                case_id, event_type.value,
                f"Assigned to {lawyer.lawyer_code}" + (f": {reason}" if reason else ""),
                db_session=session
            )
            checkpoint(context, "assign_lawyer")

        return assignment

    def reassign_lawyer(
        self,
        case_id: int,
        lawyer_id: Optional[int] = None,
        reason: Optional[str] = None,
        assigned_by: Optional[str] = None,
        specialization: Optional[str] = None,
        jurisdiction: Optional[str] = None,
        context: Optional[RequestContext] = None
    ) -> CaseAssignment:
        """Move a case that already has a lawyer to another one"""
        with self.db.get_db_session(storage_timeout(context)) as session:
            if session.get(LegalCase, case_id) is None:
                raise NotFoundError("case", case_id)
            if self.selector.active_assignment(session, case_id) is None:
                raise InvalidStateError(
                    "unassigned", "reassign",
                    f"Case {case_id} has no active assignment to reassign"
                )

        return self.assign_lawyer(
            case_id,
            specialization=specialization,
            jurisdiction=jurisdiction,
            lawyer_id=lawyer_id,
            reason=reason or "Reassigned",
            assigned_by=assigned_by,
            context=context,
        )

    def update_case_status(
        self,
        case_id: int,
        case_status: Union[CaseStatus, str],
        next_hearing_date: Union[date, datetime, str, None] = None,
        last_hearing_outcome: Optional[str] = None,
        context: Optional[RequestContext] = None
    ) -> LegalCase:
        """
        Change a case's status

        Closing statuses (Dismissed, Resolved, Closed) go through close_case.
        """
        case_status = coerce_enum(CaseStatus, case_status, "case_status")
        if case_status in CLOSING_CASE_STATUSES:
            return self.close_case(case_id, status=case_status, outcome_summary=last_hearing_outcome, context=context)

        hearing_date = _to_date(next_hearing_date, "next_hearing_date")
        with self.db.get_db_session(storage_timeout(context)) as session:
            checkpoint(context, "update_case_status")
            case = session.get(LegalCase, case_id, with_for_update=True)
            if case is None:
                raise NotFoundError("case", case_id)
            self._ensure_open(case, "update_status")
            if hearing_date is not None and hearing_date < case.case_filed_date:
                raise InvalidDateRangeError(
                    "next hearing date is before the filing date",
                    "next_hearing_date", case.case_filed_date, None
                )

            previous = case.case_status
            case.case_status = case_status.value
            if hearing_date is not None:
                case.next_hearing_date = hearing_date
            if last_hearing_outcome:
                case.last_hearing_outcome = last_hearing_outcome
            self.audit.log_case_event(
                case.case_id, CaseEventType.STATUS_CHANGED.value,
                f"{previous} -> {case_status.value}", db_session=session
            )

        logger.info(f"Case {case.case_code}: {previous} -> {case.case_status}")
        return case

    @log_execution_time()
    def close_case(
        self,
        case_id: int,
        closure_date: Union[date, datetime, str, None] = None,
        outcome_summary: Optional[str] = None,
        status: Union[CaseStatus, str] = CaseStatus.CLOSED,
        context: Optional[RequestContext] = None
    ) -> LegalCase:
        """
        Close a case and release its lawyer

        The Active assignment becomes Completed and the lawyer's load is
        decremented in the same transaction.

        Raises:
            InvalidStateError: case already closed
            InvalidDateRangeError: closure date before the filing date or in the future
        """
        status = coerce_enum(CaseStatus, status, "case_status")
        if status not in CLOSING_CASE_STATUSES:
            raise ValidationError(f"'{status.value}' is not a closing status", "case_status")
        closure = _to_date(closure_date, "case_closure_date") or self.clock.today()

        with self.db.get_db_session(storage_timeout(context)) as session:
            checkpoint(context, "close_case")
            case = session.get(LegalCase, case_id, with_for_update=True)
            if case is None:
                raise NotFoundError("case", case_id)
            self._ensure_open(case, "close")
            if closure < case.case_filed_date:
                raise InvalidDateRangeError(
                    f"closure date {closure} is before the filing date {case.case_filed_date}",
                    "case_closure_date", case.case_filed_date, self.clock.today()
                )
            if closure > self.clock.today():
                raise InvalidDateRangeError(
                    f"closure date {closure} is in the future",
                    "case_closure_date", case.case_filed_date, self.clock.today()
                )

            assignment = self.selector.active_assignment(session, case_id)
            if assignment is not None:
                self.selector.release(session, assignment, AssignmentStatus.COMPLETED, self.clock.now())

            case.case_status = status.value
            case.case_closure_date = closure
            if outcome_summary:
                case.outcome_summary = outcome_summary
            self.audit.log_case_event(
                case.case_id, CaseEventType.CLOSED.value,
                f"{status.value} on {closure}", db_session=session
            )
            checkpoint(context, "close_case")

        logger.info(f"Case {case.case_code} closed ({status.value})")
        return case

    @staticmethod
    def _ensure_open(case: LegalCase, action: str) -> None:
        if CaseStatus(case.case_status) in CLOSING_CASE_STATUSES:
            raise InvalidStateError(
                case.case_status, action,
                f"Case {case.case_code} is '{case.case_status}'"
            )

    # ------------------------------------------------------------------
    # Notices
    # ------------------------------------------------------------------

    def _borrower(self, loan_account_number: str) -> BorrowerRecord:
        borrower = self.borrower_lookup.get_by_loan_account(loan_account_number)
        if borrower is None:
            raise NotFoundError("borrower", loan_account_number)
        return borrower

    def _render(self, template_ids: List[str], borrower: BorrowerRecord, values: Dict[str, Any]) -> str:
        context = borrower.template_context()
        context.update({k: ("" if v is None else v) for k, v in values.items()})
        return "\n\n".join(self.renderer.render(template_id, context) for template_id in template_ids)

    @staticmethod
    def _notice_values(notice: LegalNotice) -> Dict[str, Any]:
        return {
            "notice_code": notice.notice_code,
            "dpd_days": notice.dpd_days,
            "trigger_type": notice.trigger_type,
            "notice_generation_date": notice.notice_generation_date.strftime("%Y-%m-%d"),
            "notice_expiry_date": notice.notice_expiry_date.isoformat() if notice.notice_expiry_date else None,
            "legal_entity_name": notice.legal_entity_name,
        }

    @log_execution_time()
    def create_notice(
        self,
        loan_account_number: str,
        dpd_days: int,
        trigger_type: Union[TriggerType, str],
        template_ids: List[str],
        communication_modes: List[Union[CommunicationMode, str]],
        notice_expiry_date: Union[date, datetime, str, None] = None,
        legal_entity_name: Optional[str] = None,
        issued_by: Optional[str] = None,
        acknowledgement_required: bool = True,
        remarks: Optional[str] = None,
        case_id: Optional[int] = None,
        notice_status: Union[NoticeStatus, str] = NoticeStatus.DRAFT,
        dispatch: bool = True,
        context: Optional[RequestContext] = None
    ) -> LegalNotice:
        """
        Issue a notice under a new PLN code and dispatch it

        The code is allocated first and the duplicate check runs while the
        transaction holds the PLN counter row, so concurrent creators for
        one account are checked one after another. A suppressed notice
        rolls its allocation back and leaves no gap in the sequence.

        After commit the notice is claimed and sent on every mode; it becomes
        Sent if at least one mode delivered, Failed otherwise.

        Args:
            loan_account_number: account
            dpd_days: days past due
            trigger_type: trigger condition
            template_ids: templates rendered into the notice body (non-empty)
            communication_modes: channels to send on (non-empty)
            notice_expiry_date: response deadline (default: validity period from today)
            legal_entity_name: issuing entity
            issued_by: user
            acknowledgement_required: whether receipt must be confirmed
            remarks: internal notes
            case_id: optional case the notice belongs to
            notice_status: initial status, Draft or Generated
            dispatch: send immediately
            context: request deadline / cancellation

        Raises:
            ValidationError, NotFoundError, DuplicateNoticeError
        """
        loan_account_number = _required_text(loan_account_number, "loan_account_number")
        if dpd_days is None or dpd_days < 0:
            raise ValidationError("dpd_days must not be negative", "dpd_days")
        trigger_type = coerce_enum(TriggerType, trigger_type, "trigger_type")
        initial_status = coerce_enum(NoticeStatus, notice_status, "notice_status")
        if initial_status not in INITIAL_STATUSES:
            raise ValidationError("a notice starts as Draft or Generated", "notice_status")
        if not template_ids:
            raise ValidationError("template_ids cannot be empty", "template_ids")
        if not communication_modes:
            raise ValidationError("communication_modes cannot be empty", "communication_modes")
        modes = []
        for mode in communication_modes:
            mode = coerce_enum(CommunicationMode, mode, "communication_modes").value
            if mode not in modes:
                modes.append(mode)
        if remarks and len(remarks) > 250:
            raise ValidationError("remarks cannot exceed 250 characters", "remarks")

        now = self.clock.now()
        expiry = _to_date(notice_expiry_date, "notice_expiry_date")
        if expiry is None:
            expiry = now.date() + timedelta(days=settings.default_notice_validity_days)
        if expiry < now.date():
            raise InvalidDateRangeError(
                "notice expiry date is before the generation date",
                "notice_expiry_date", now.date(), None
            )

        borrower = self._borrower(loan_account_number)
        # unknown templates fail here, before anything is allocated
        self._render(template_ids, borrower, {"dpd_days": dpd_days})

        with self.db.get_db_session(storage_timeout(context)) as session:
            checkpoint(context, "create_notice")
            if case_id is not None:
                case = session.get(LegalCase, case_id)
                if case is None:
                    raise NotFoundError("case", case_id)
                if case.loan_account_number != loan_account_number:
                    raise ValidationError("case belongs to a different loan account", "case_id")

            # holding the PLN counter row, the duplicate check sees every
            # notice committed by a creator that got the row first
            allocation = self.allocator.allocate(NOTICE_PREFIX, db_session=session)
            checkpoint(context, "create_notice")
            self.guard.check_duplicate(session, loan_account_number, dpd_days, now)

            notice = LegalNotice(
                notice_code=allocation.formatted_id,
                loan_account_number=loan_account_number,
                case_id=case_id,
                dpd_days=dpd_days,
                trigger_type=trigger_type.value,
                template_ids=list(template_ids),
                communication_modes=modes,
                notice_generation_date=now,
                notice_expiry_date=expiry,
                legal_entity_name=legal_entity_name,
                issued_by=issued_by,
                acknowledgement_required=acknowledgement_required,
                status=initial_status.value,
                remarks=remarks,
            )
            session.add(notice)
            session.flush()
            self.audit.log_notice_transition(
                notice.notice_id, None, initial_status.value, "created", issued_by,
                db_session=session
            )
            if case_id is not None:
                self.audit.log_case_event(
                    case_id, CaseEventType.NOTICE_LINKED.value,
                    f"Notice {notice.notice_code} issued", db_session=session
                )
            checkpoint(context, "create_notice")

        logger.info(
            f"Notice created: {notice.notice_code} for {loan_account_number} "
            f"(DPD {dpd_days}, {trigger_type.value})"
        )

        if not dispatch:
            return notice
        return self._dispatch(notice.notice_id, borrower, issued_by, context)

    def dispatch_notice(
        self,
        notice_id: int,
        actor: Optional[str] = None,
        context: Optional[RequestContext] = None
    ) -> LegalNotice:
        """Send a Draft or Generated notice"""
        notice = self.get_notice(notice_id)
        return self._dispatch(notice_id, self._borrower(notice.loan_account_number), actor, context)

    def _dispatch(
        self,
        notice_id: int,
        borrower: BorrowerRecord,
        actor: Optional[str],
        context: Optional[RequestContext]
    ) -> LegalNotice:
        notice = self.get_notice(notice_id)
        content = self._render(notice.template_ids, borrower, self._notice_values(notice))
        with self.db.get_db_session(storage_timeout(context)) as session:
            checkpoint(context, "dispatch_notice")
            notice = self.lifecycle.claim_dispatch(session, notice_id)

        attempts = []
        for channel in notice.communication_modes:
            recipient = borrower.recipient_for(channel)
            body = content
            if channel == CommunicationMode.SMS.value:
                body = normalize_text(_HTML_TAG_RE.sub("", content))
            try:
                result = self.dispatcher.send(channel, recipient, body)
            except Exception as e:
                logger.error(f"Dispatch of {notice.notice_code} via {channel} raised: {str(e)}")
                result = DispatchResult(success=False, error=str(e))
            attempts.append((channel, recipient, result))

        delivered = [channel for channel, _, result in attempts if result.success]
        event = NoticeEvent.DISPATCH_SUCCEEDED if delivered else NoticeEvent.DISPATCH_FAILED

        with self.db.get_db_session(storage_timeout(context)) as session:
            notice = self.lifecycle.load_notice(session, notice_id, lock=True)
            for channel, recipient, result in attempts:
                self.audit.log_dispatch(
                    notice_id, channel, recipient, result.success,
                    result.provider_message_id, result.error, db_session=session
                )
            self.lifecycle.apply_event(session, notice, event, actor)

        if not delivered:
            logger.warning(f"Notice {notice.notice_code} could not be delivered on any channel")
        return notice

    def mark_notice_generated(
        self,
        notice_id: int,
        document_path: Optional[str] = None,
        actor: Optional[str] = None
    ) -> LegalNotice:
        """Record that the notice document was produced (Draft -> Generated)"""
        with self.db.get_db_session() as session:
            notice = self.lifecycle.load_notice(session, notice_id, lock=True)
            self.lifecycle.apply_event(session, notice, NoticeEvent.DOCUMENT_GENERATED, actor)
            if document_path:
                notice.document_path = document_path
        return notice

    def generate_notice_preview(
        self,
        loan_account_number: str,
        template_ids: List[str],
        dpd_days: Optional[int] = None,
        legal_entity_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Render templates for an account without creating a notice"""
        if not template_ids:
            raise ValidationError("template_ids cannot be empty", "template_ids")
        borrower = self._borrower(loan_account_number)
        expiry = self.clock.today() + timedelta(days=settings.default_notice_validity_days)
        content = self._render(template_ids, borrower, {
            "notice_code": "PREVIEW",
            "dpd_days": dpd_days,
            "notice_generation_date": self.clock.today().isoformat(),
            "notice_expiry_date": expiry.isoformat(),
            "legal_entity_name": legal_entity_name,
        })
        return {
            "loan_account_number": loan_account_number,
            "borrower_name": borrower.borrower_name,
            "template_ids": list(template_ids),
            "content": content,
        }

    def get_notice(self, notice_id: int) -> LegalNotice:
        with self.db.get_db_session() as session:
            return self.lifecycle.load_notice(session, notice_id)

    def list_notices(
        self,
        loan_account_number: Optional[str] = None,
        status: Union[NoticeStatus, str, None] = None,
        limit: int = 100
    ) -> List[LegalNotice]:
        stmt = select(LegalNotice)
        if loan_account_number:
            stmt = stmt.where(LegalNotice.loan_account_number == loan_account_number)
        if status:
            stmt = stmt.where(LegalNotice.status == coerce_enum(NoticeStatus, status, "status").value)
        stmt = stmt.order_by(LegalNotice.notice_generation_date.desc(), LegalNotice.notice_id.desc()).limit(limit)
        with self.db.get_db_session() as session:
            return list(session.execute(stmt).scalars().all())

    def expire_overdue_notices(self, as_of: Union[date, datetime, str, None] = None) -> List[str]:
        """Expire unacknowledged Sent notices past their expiry date (scheduler hook)"""
        as_of = _to_date(as_of, "as_of")
        with self.db.get_db_session() as session:
            expired = self.lifecycle.expire_overdue(session, as_of)
            return [notice.notice_code for notice in expired]

    # ------------------------------------------------------------------
    # Acknowledgements
    # ------------------------------------------------------------------

    @log_execution_time()
    def record_acknowledgement(
        self,
        notice_id: int,
        acknowledged_by: Union[AcknowledgedBy, str],
        acknowledgement_date: Union[date, datetime, str],
        acknowledgement_mode: Union[AcknowledgementMode, str],
        relationship_to_borrower: Optional[str] = None,
        remarks: Optional[str] = None,
        captured_by: Optional[str] = None,
        proof_document: Optional[bytes] = None,
        proof_filename: Optional[str] = None,
        context: Optional[RequestContext] = None
    ) -> NoticeAcknowledgement:
        """
        Record delivery or refusal of a Sent notice under a new ACKN code

        The acknowledgement insert and the notice transition commit together.
        A proof document, when given, is stored only after the notice passed
        validation and is removed again if the transaction fails.

        Raises:
            NotFoundError, DuplicateAcknowledgementError, InvalidStateError,
            InvalidDateRangeError, ValidationError
        """
        coerce_enum(AcknowledgedBy, acknowledged_by, "acknowledged_by")
        coerce_enum(AcknowledgementMode, acknowledgement_mode, "acknowledgement_mode")
        if acknowledgement_date is None:
            raise ValidationError("acknowledgement_date is required", "acknowledgement_date")

        proof_path = None
        try:
            with self.db.get_db_session(storage_timeout(context)) as session:
                checkpoint(context, "record_acknowledgement")
                notice = self.lifecycle.validate_acknowledgement(session, notice_id, acknowledgement_date)

                borrower = self.borrower_lookup.get_by_loan_account(notice.loan_account_number)
                if proof_document is not None:
                    proof_path = self.storage.store(proof_document, {
                        "category": "acknowledgements",
                        "filename": proof_filename or f"{notice.notice_code}_proof.bin",
                        "notice_code": notice.notice_code,
                    })

                checkpoint(context, "record_acknowledgement")
                acknowledgement = self.lifecycle.record_acknowledgement(
                    session,
                    notice_id,
                    acknowledged_by,
                    acknowledgement_date,
                    acknowledgement_mode,
                    relationship_to_borrower=relationship_to_borrower,
                    borrower_name=borrower.borrower_name if borrower else None,
                    remarks=remarks,
                    proof_path=proof_path,
                    captured_by=captured_by,
                )
                checkpoint(context, "record_acknowledgement")
        except Exception:
            if proof_path:
                self.storage.delete(proof_path)
            raise

        return acknowledgement

    def verify_acknowledgement(
        self,
        acknowledgement_id: int,
        verified_by: Optional[str] = None
    ) -> NoticeAcknowledgement:
        """Pending Verification -> Acknowledged for both acknowledgement and notice"""
        with self.db.get_db_session() as session:
            acknowledgement = self.lifecycle.verify_acknowledgement(session, acknowledgement_id, verified_by)
        logger.info(f"Acknowledgement {acknowledgement.acknowledgement_code} verified by {verified_by}")
        return acknowledgement

    def get_acknowledgement(self, acknowledgement_id: int) -> NoticeAcknowledgement:
        with self.db.get_db_session() as session:
            acknowledgement = session.get(NoticeAcknowledgement, acknowledgement_id)
            if acknowledgement is None:
                raise NotFoundError("acknowledgement", acknowledgement_id)
            return acknowledgement

    # ------------------------------------------------------------------
    # Sequences
    # ------------------------------------------------------------------

    def get_sequence_status(self, prefix: str, category_code: Optional[str] = None) -> Dict[str, Any]:
        """Today's counter for a prefix (operational/debug)"""
        return self.allocator.get_sequence_status(prefix, category_code)
