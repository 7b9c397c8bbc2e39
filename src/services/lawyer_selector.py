"""
Lawyer selection and case assignment

Candidates are eligible when active, available and below capacity. The
default order is raw load balance (lowest current load first, higher success
rate breaking ties); the composite workload score is exposed alongside and
can be made the primary order through settings.lawyer_selection_strategy.

Assignment and reassignment run inside the caller's transaction: load
counters move through conditional UPDATEs so a lawyer can never be pushed
past capacity or below zero, and the assignment rows flip in the same unit
of work.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import select, update
from sqlalchemy.orm import Session
from config.settings import settings
from src.db.models.case_assignment import CaseAssignment
from src.db.models.lawyer import Lawyer
from src.db.models.legal_case import LegalCase
from src.services.lawyer_scoring import score_lawyer, workload_summary
from src.utils.constants import AssignmentStatus, SelectionStrategy
from src.utils.exceptions import NoEligibleLawyerError, NotFoundError, ValidationError
from src.utils.logger import get_logger

logger = get_logger(__name__)


def eligible_lawyers_query(
    specialization: Optional[str] = None,
    jurisdiction: Optional[str] = None
):
    """SELECT over eligible lawyers with optional substring filters"""
    stmt = select(Lawyer).where(
        Lawyer.is_active.is_(True),
        Lawyer.is_available.is_(True),
        Lawyer.current_case_load < Lawyer.max_case_load,
    )
    if specialization:
        stmt = stmt.where(Lawyer.specialization.ilike(f"%{specialization}%"))
    if jurisdiction:
        stmt = stmt.where(Lawyer.jurisdiction.ilike(f"%{jurisdiction}%"))
    return stmt


class LawyerSelector:
    """Ranks eligible lawyers and moves case assignments"""
    
    def __init__(self, strategy: Optional[str] = None):
        self.strategy = SelectionStrategy(strategy or settings.lawyer_selection_strategy)
    
    def select_candidates(
        self,
        session: Session,
        specialization: Optional[str] = None,
        jurisdiction: Optional[str] = None,
        limit: Optional[int] = None,
        exclude_ids: Optional[List[int]] = None
    ) -> List[Lawyer]:
        """
        Ranked shortlist of eligible lawyers
        
        Args:
            session: DB session
            specialization: substring filter on specialization
            jurisdiction: substring filter on jurisdiction
            limit: maximum results (default settings.default_candidate_limit)
            exclude_ids: lawyer ids to leave out
        
        Returns:
            lawyers, best first
        """
        limit = limit or settings.default_candidate_limit
        if limit < 1:
            raise ValidationError("limit must be at least 1", "limit")
        
        stmt = eligible_lawyers_query(specialization, jurisdiction)
        if exclude_ids:
            stmt = stmt.where(Lawyer.lawyer_id.notin_(exclude_ids))
        
        if self.strategy == SelectionStrategy.LOAD_BALANCE:
            stmt = stmt.order_by(
                Lawyer.current_case_load.asc(),
                Lawyer.success_rate_percent.desc(),
                Lawyer.lawyer_id.asc(),
            ).limit(limit)
            return list(session.execute(stmt).scalars().all())
        
        lawyers = session.execute(stmt).scalars().all()
        ranked = sorted(
            lawyers,
            key=lambda l: (-score_lawyer(l), l.current_case_load, l.lawyer_id)
        )
        return ranked[:limit]
    
    def rank_candidates(
        self,
        session: Session,
        specialization: Optional[str] = None,
        jurisdiction: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Shortlist annotated with workload figures for display"""
        ranked = []
        for position, lawyer in enumerate(
            self.select_candidates(session, specialization, jurisdiction, limit), start=1
        ):
            entry = lawyer.to_json()
            entry.update(workload_summary(lawyer))
            entry["rank"] = position
            ranked.append(entry)
        return ranked
    
    def assign(
        self,
        session: Session,
        case_id: int,
        lawyer_id: Optional[int] = None,
        specialization: Optional[str] = None,
        jurisdiction: Optional[str] = None,
        reason: Optional[str] = None,
        assigned_by: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> CaseAssignment:
        """
        Assign a case, replacing any current Active assignment
        
        With lawyer_id the named lawyer is used (and must be eligible);
        otherwise the best candidate that still has capacity is taken.
        The previous assignment, if any, becomes Reassigned and its
        lawyer's load is released.
        
        Raises:
            NotFoundError: case or lawyer missing
            ValidationError: named lawyer is not eligible or already assigned
            NoEligibleLawyerError: no candidate left
        """
        now = now or datetime.utcnow()
        case = session.execute(
            select(LegalCase).where(LegalCase.case_id == case_id).with_for_update()
        ).scalar_one_or_none()
        if case is None:
            raise NotFoundError("case", case_id)
        
        previous = session.execute(
            select(CaseAssignment)
            .where(
                CaseAssignment.case_id == case_id,
                CaseAssignment.status == AssignmentStatus.ACTIVE.value,
            )
            .with_for_update()
        ).scalar_one_or_none()
        
        if lawyer_id is not None:
            if previous is not None and previous.lawyer_id == lawyer_id:
                raise ValidationError(
                    f"lawyer {lawyer_id} is already assigned to case {case.case_code}",
                    "lawyer_id"
                )
            lawyer = session.get(Lawyer, lawyer_id)
            if lawyer is None:
                raise NotFoundError("lawyer", lawyer_id)
            if not self._take_slot(session, lawyer.lawyer_id):
                raise ValidationError(
                    f"lawyer {lawyer.lawyer_code} is not available for assignment",
                    "lawyer_id"
                )
        else:
            exclude = [previous.lawyer_id] if previous is not None else None
            lawyer = self._claim_best(session, specialization, jurisdiction, exclude)
        
        session.refresh(lawyer)
        score = score_lawyer(lawyer)
        
        if previous is not None:
            self.release(session, previous, AssignmentStatus.REASSIGNED, now)
            # the partial unique index allows one Active row per case
            session.flush()
        
        assignment = CaseAssignment(
            case_id=case_id,
            lawyer_id=lawyer.lawyer_id,
            assigned_at=now,
            workload_score_at_assignment=score,
            status=AssignmentStatus.ACTIVE.value,
            assignment_reason=reason,
            assigned_by=assigned_by,
        )
        session.add(assignment)
        case.current_lawyer_id = lawyer.lawyer_id
        session.flush()
        
        logger.info(
            f"Case {case.case_code} assigned to {lawyer.lawyer_code} "
            f"(load {lawyer.current_case_load}/{lawyer.max_case_load}, score {score})"
            + (f", replacing lawyer {previous.lawyer_id}" if previous is not None else "")
        )
        return assignment
    
    def _claim_best(
        self,
        session: Session,
        specialization: Optional[str],
        jurisdiction: Optional[str],
        exclude_ids: Optional[List[int]]
    ) -> Lawyer:
        candidates = self.select_candidates(
            session, specialization, jurisdiction, exclude_ids=exclude_ids
        )
        for candidate in candidates:
            # another request may have filled this lawyer since the SELECT
            if self._take_slot(session, candidate.lawyer_id):
                return candidate
            logger.debug(f"Lawyer {candidate.lawyer_code} filled up, trying next candidate")
        raise NoEligibleLawyerError(specialization, jurisdiction)
    
    def _take_slot(self, session: Session, lawyer_id: int) -> bool:
        """Increment the load only while the lawyer is still eligible"""
        result = session.execute(
            update(Lawyer)
            .where(
                Lawyer.lawyer_id == lawyer_id,
                Lawyer.is_active.is_(True),
                Lawyer.is_available.is_(True),
                Lawyer.current_case_load < Lawyer.max_case_load,
            )
            .values(current_case_load=Lawyer.current_case_load + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
    
    def release(
        self,
        session: Session,
        assignment: CaseAssignment,
        status: AssignmentStatus,
        now: Optional[datetime] = None
    ) -> None:
        """End an Active assignment and give the lawyer's slot back"""
        if assignment.status != AssignmentStatus.ACTIVE.value:
            raise ValidationError(
                f"assignment {assignment.assignment_id} is not active", "assignment"
            )
        assignment.status = status.value
        assignment.ended_at = now or datetime.utcnow()
        session.execute(
            update(Lawyer)
            .where(Lawyer.lawyer_id == assignment.lawyer_id, Lawyer.current_case_load > 0)
            .values(current_case_load=Lawyer.current_case_load - 1)
            .execution_options(synchronize_session=False)
        )
        lawyer = session.get(Lawyer, assignment.lawyer_id)
        if lawyer is not None:
            session.refresh(lawyer)
    
    def active_assignment(self, session: Session, case_id: int) -> Optional[CaseAssignment]:
        return session.execute(
            select(CaseAssignment).where(
                CaseAssignment.case_id == case_id,
                CaseAssignment.status == AssignmentStatus.ACTIVE.value,
            )
        ).scalar_one_or_none()
