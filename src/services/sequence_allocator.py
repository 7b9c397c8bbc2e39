"""
Date-partitioned sequence allocator

Issues identifiers of the form PREFIX-YYYYMMDD[-CATEGORY]-NNNN. Each
(prefix, category, calendar day) triple owns one SequenceCounter row that is
incremented atomically in storage; nothing is cached in process memory, so
several server instances can allocate from the same partition safely.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple, Union
from sqlalchemy import select, update, exists
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from config.settings import settings
from src.db.connection import DatabaseManager, db_manager
from src.db.models.sequence_counter import SequenceCounter
from src.utils.clock import Clock, SystemClock
from src.utils.constants import (
    CODE_PATTERN,
    DATE_STAMP_FORMAT,
    LAWYER_PREFIX,
    CASE_PREFIX,
    NOTICE_PREFIX,
    ACKNOWLEDGEMENT_PREFIX,
)
from src.utils.exceptions import (
    AllocationConflictError,
    InvalidPrefixError,
    NotFoundError,
    ValidationError,
)
from src.utils.logger import get_logger

logger = get_logger(__name__)

_CODE_RE = re.compile(rf"^{CODE_PATTERN}$")
_DATE_STAMP_RE = re.compile(r"^\d{8}$")
IDENTIFIER_RE = re.compile(
    rf"^({CODE_PATTERN})-(\d{{8}})(?:-({CODE_PATTERN}))?-(\d+)$"
)


@dataclass(frozen=True)
class Allocation:
    """Result of one allocate() call"""
    sequence_number: int
    formatted_id: str
    partition_key: str
    prefix: str
    category_code: Optional[str]
    date_stamp: str


@dataclass(frozen=True)
class ParsedIdentifier:
    prefix: str
    date_stamp: str
    category_code: Optional[str]
    sequence_number: int


def validate_code(value: Any, field: str = "prefix") -> str:
    """
    Check a prefix or category code
    
    Args:
        value: candidate code
        field: field name reported on failure
    
    Returns:
        the code unchanged
    
    Raises:
        InvalidPrefixError: not 2-10 uppercase alphanumerics
    """
    if not isinstance(value, str) or not _CODE_RE.match(value):
        raise InvalidPrefixError(value, field)
    return value


def to_date_stamp(value: Union[str, date, datetime]) -> str:
    """Normalise a date or YYYYMMDD string to a YYYYMMDD stamp"""
    if isinstance(value, (date, datetime)):
        return value.strftime(DATE_STAMP_FORMAT)
    if isinstance(value, str) and _DATE_STAMP_RE.match(value):
        try:
            datetime.strptime(value, DATE_STAMP_FORMAT)
        except ValueError:
            pass
        else:
            return value
    raise ValidationError(f"invalid date stamp {value!r}, expected YYYYMMDD", "date_stamp")


def build_partition_key(prefix: str, category_code: Optional[str], date_stamp: str) -> str:
    """PREFIX-[CATEGORY-]YYYYMMDD"""
    if category_code:
        return f"{prefix}-{category_code}-{date_stamp}"
    return f"{prefix}-{date_stamp}"


def format_identifier(
    prefix: str,
    date_stamp: Union[str, date, datetime],
    category_code: Optional[str],
    sequence_number: int,
    pad_width: int = 4
) -> str:
    """
    Build a display identifier
    
    The sequence is zero-padded to pad_width digits and grows past it
    without truncation.
    
    Example:
        format_identifier("LC", "20250721", "MIC", 1) -> "LC-20250721-MIC-0001"
        format_identifier("LC", "20250721", None, 23) -> "LC-20250721-0023"
    """
    validate_code(prefix)
    if category_code is not None:
        validate_code(category_code, "category_code")
    if sequence_number < 1:
        raise ValidationError("sequence number must be positive", "sequence_number")
    
    stamp = to_date_stamp(date_stamp)
    parts = [prefix, stamp]
    if category_code:
        parts.append(category_code)
    parts.append(str(sequence_number).zfill(pad_width))
    return "-".join(parts)


def parse_identifier(identifier: str) -> ParsedIdentifier:
    """
    Split a display identifier back into its parts
    
    Raises:
        ValidationError: identifier is not in PREFIX-YYYYMMDD[-CATEGORY]-NNNN form
    """
    match = IDENTIFIER_RE.match(identifier or "")
    if not match:
        raise ValidationError(f"malformed identifier {identifier!r}", "identifier")
    prefix, stamp, category_code, number = match.groups()
    return ParsedIdentifier(
        prefix=prefix,
        date_stamp=to_date_stamp(stamp),
        category_code=category_code,
        sequence_number=int(number),
    )


def _identifier_columns() -> Dict[str, Any]:
    """Entity column holding the identifiers of each known prefix"""
    from src.db.models.lawyer import Lawyer
    from src.db.models.legal_case import LegalCase
    from src.db.models.legal_notice import LegalNotice
    from src.db.models.notice_acknowledgement import NoticeAcknowledgement
    
    return {
        LAWYER_PREFIX: Lawyer.lawyer_code,
        CASE_PREFIX: LegalCase.case_code,
        NOTICE_PREFIX: LegalNotice.notice_code,
        ACKNOWLEDGEMENT_PREFIX: NoticeAcknowledgement.acknowledgement_code,
    }


class SequenceAllocator:
    """Hands out per-day counters backed by the sequence_counter table"""
    
    def __init__(
        self,
        db: Optional[DatabaseManager] = None,
        clock: Optional[Clock] = None,
        max_attempts: Optional[int] = None,
        pad_width: Optional[int] = None
    ):
        self.db = db or db_manager
        self.clock = clock or SystemClock(settings.business_timezone)
        self.max_attempts = max_attempts or settings.sequence_max_attempts
        self.pad_width = pad_width or settings.sequence_pad_width
    
    def current_date_stamp(self) -> str:
        return self.clock.today().strftime(DATE_STAMP_FORMAT)
    
    def _partition(self, prefix: str, category_code: Optional[str]) -> Tuple[str, str]:
        validate_code(prefix)
        if category_code is not None:
            validate_code(category_code, "category_code")
        date_stamp = self.current_date_stamp()
        return build_partition_key(prefix, category_code, date_stamp), date_stamp
    
    def allocate(
        self,
        prefix: str,
        category_code: Optional[str] = None,
        db_session: Optional[Session] = None
    ) -> Allocation:
        """
        Allocate the next number in today's partition
        
        With db_session the increment joins the caller's transaction, so
        the number is returned to the pool if the caller rolls back.
        
        Args:
            prefix: identifier prefix (e.g. "LC")
            category_code: optional category segment
            db_session: caller's session (None = own transaction)
        
        Returns:
            Allocation
        
        Raises:
            InvalidPrefixError: malformed prefix or category code
            AllocationConflictError: retry budget exhausted
        """
        partition_key, date_stamp = self._partition(prefix, category_code)
        
        if db_session is None:
            with self.db.get_db_session() as session:
                value = self._increment(session, partition_key, prefix, category_code, date_stamp)
        else:
            value = self._increment(db_session, partition_key, prefix, category_code, date_stamp)
        
        formatted_id = format_identifier(prefix, date_stamp, category_code, value, self.pad_width)
        logger.debug(f"Allocated {formatted_id} ({partition_key}={value})")
        return Allocation(
            sequence_number=value,
            formatted_id=formatted_id,
            partition_key=partition_key,
            prefix=prefix,
            category_code=category_code,
            date_stamp=date_stamp,
        )
    
    def _increment(
        self,
        session: Session,
        partition_key: str,
        prefix: str,
        category_code: Optional[str],
        date_stamp: str
    ) -> int:
        """Increment-and-return, creating the row on first use"""
        for attempt in range(1, self.max_attempts + 1):
            value = self._increment_existing(session, partition_key)
            if value is not None:
                return value
            
            try:
                with session.begin_nested():
                    session.add(SequenceCounter(
                        partition_key=partition_key,
                        prefix=prefix,
                        category_code=category_code,
                        date_stamp=date_stamp,
                        current_value=1,
                    ))
                return 1
            except IntegrityError:
                # another transaction created the row first; increment it instead
                logger.warning(
                    f"Counter insert conflict on {partition_key} "
                    f"(attempt {attempt}/{self.max_attempts})"
                )
        
        logger.error(f"Sequence allocation gave up on {partition_key}")
        raise AllocationConflictError(partition_key, self.max_attempts)
    
    def _increment_existing(self, session: Session, partition_key: str) -> Optional[int]:
        stmt = (
            update(SequenceCounter)
            .where(SequenceCounter.partition_key == partition_key)
            .values(current_value=SequenceCounter.current_value + 1)
            .execution_options(synchronize_session=False)
        )
        
        if session.get_bind().dialect.update_returning:
            result = session.execute(stmt.returning(SequenceCounter.current_value))
            return result.scalar_one_or_none()
        
        # no RETURNING: the row stays locked by our UPDATE until commit
        result = session.execute(stmt)
        if result.rowcount == 0:
            return None
        return session.execute(
            select(SequenceCounter.current_value)
            .where(SequenceCounter.partition_key == partition_key)
        ).scalar_one()
    
    def peek(
        self,
        prefix: str,
        category_code: Optional[str] = None,
        db_session: Optional[Session] = None
    ) -> int:
        """
        Current value of today's partition without allocating
        
        Raises:
            NotFoundError: nothing allocated in the partition today
        """
        partition_key, _ = self._partition(prefix, category_code)
        value = self._read(partition_key, db_session)
        if value is None:
            raise NotFoundError("sequence", partition_key)
        return value
    
    def _read(self, partition_key: str, db_session: Optional[Session]) -> Optional[int]:
        stmt = select(SequenceCounter.current_value).where(
            SequenceCounter.partition_key == partition_key
        )
        if db_session is not None:
            return db_session.execute(stmt).scalar_one_or_none()
        with self.db.get_db_session() as session:
            return session.execute(stmt).scalar_one_or_none()
    
    def is_unique(self, candidate_id: str, db_session: Optional[Session] = None) -> bool:
        """
        True if no entity already carries candidate_id
        
        Checks the owning entity table directly, independent of the counter.
        
        Raises:
            ValidationError: malformed identifier
            InvalidPrefixError: prefix has no owning entity
        """
        parsed = parse_identifier(candidate_id)
        column = _identifier_columns().get(parsed.prefix)
        if column is None:
            raise InvalidPrefixError(parsed.prefix)
        
        stmt = select(exists().where(column == candidate_id))
        if db_session is not None:
            taken = db_session.execute(stmt).scalar()
        else:
            with self.db.get_db_session() as session:
                taken = session.execute(stmt).scalar()
        return not taken
    
    def get_sequence_status(
        self,
        prefix: str,
        category_code: Optional[str] = None,
        db_session: Optional[Session] = None
    ) -> Dict[str, Any]:
        """
        Operational view of today's partition
        
        Returns:
            dict with prefix, category_code, date_stamp, partition_key and
            current_value (0 when nothing was allocated today)
        """
        partition_key, date_stamp = self._partition(prefix, category_code)
        value = self._read(partition_key, db_session)
        return {
            "prefix": prefix,
            "category_code": category_code,
            "date_stamp": date_stamp,
            "partition_key": partition_key,
            "current_value": value or 0,
            "next_identifier": format_identifier(
                prefix, date_stamp, category_code, (value or 0) + 1, self.pad_width
            ),
        }
    
    def list_counters(self, date_stamp: Optional[str] = None) -> List[Dict[str, Any]]:
        """Every counter row of one day (default today)"""
        stamp = to_date_stamp(date_stamp) if date_stamp else self.current_date_stamp()
        with self.db.get_db_session() as session:
            rows = session.execute(
                select(SequenceCounter)
                .where(SequenceCounter.date_stamp == stamp)
                .order_by(SequenceCounter.partition_key)
            ).scalars().all()
            return [row.to_json() for row in rows]
