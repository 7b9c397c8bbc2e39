"""
Constants and enumerations

Values match the labels stored in the database and exposed over the API.
"""
from enum import Enum
from typing import FrozenSet


# ============================================================================
# Identifier prefixes
# ============================================================================

LAWYER_PREFIX: str = "LAW"
CASE_PREFIX: str = "LC"
NOTICE_PREFIX: str = "PLN"
ACKNOWLEDGEMENT_PREFIX: str = "ACKN"

# prefix/category codes: 2-10 uppercase alphanumerics
CODE_PATTERN: str = r"[A-Z0-9]{2,10}"

DATE_STAMP_FORMAT: str = "%Y%m%d"


# ============================================================================
# Cases
# ============================================================================

class CaseType(str, Enum):
    """Case type"""
    CIVIL = "Civil"
    CRIMINAL = "Criminal"
    ARBITRATION = "Arbitration"
    CHEQUE_BOUNCE_138 = "138 Bounce"
    SARFAESI = "SARFAESI"


class CaseStatus(str, Enum):
    """Case status"""
    FILED = "Filed"
    UNDER_TRIAL = "Under Trial"
    STAYED = "Stayed"
    DISMISSED = "Dismissed"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


CLOSING_CASE_STATUSES: FrozenSet[CaseStatus] = frozenset({
    CaseStatus.DISMISSED,
    CaseStatus.RESOLVED,
    CaseStatus.CLOSED,
})


class CaseEventType(str, Enum):
    """Case timeline event type"""
    CREATED = "CREATED"
    ASSIGNED = "ASSIGNED"
    REASSIGNED = "REASSIGNED"
    STATUS_CHANGED = "STATUS_CHANGED"
    CLOSED = "CLOSED"
    NOTICE_LINKED = "NOTICE_LINKED"


# ============================================================================
# Lawyers
# ============================================================================

class LawyerType(str, Enum):
    """Lawyer type"""
    INTERNAL = "Internal"
    EXTERNAL = "External"
    SENIOR = "Senior"
    JUNIOR = "Junior"
    ASSOCIATE = "Associate"


class AssignmentStatus(str, Enum):
    """Case assignment status"""
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    REASSIGNED = "Reassigned"


class SelectionStrategy(str, Enum):
    """Candidate ordering used by the lawyer selector"""
    LOAD_BALANCE = "load_balance"
    COMPOSITE_SCORE = "composite_score"


# ============================================================================
# Notices
# ============================================================================

class TriggerType(str, Enum):
    """Condition that triggered a notice"""
    DPD_THRESHOLD = "DPD Threshold"
    PAYMENT_FAILURE = "Payment Failure"
    MANUAL_TRIGGER = "Manual Trigger"
    BROKEN_PTP = "Broken PTP"
    ACKNOWLEDGEMENT_PENDING = "Acknowledgement Pending"


class CommunicationMode(str, Enum):
    """Channel a notice is sent through"""
    EMAIL = "Email"
    SMS = "SMS"
    COURIER_POST = "Courier/Post"


class NoticeStatus(str, Enum):
    """Legal notice status"""
    DRAFT = "Draft"
    GENERATED = "Generated"
    SENT = "Sent"
    ACKNOWLEDGED = "Acknowledged"
    REFUSED = "Refused"
    PENDING_VERIFICATION = "Pending Verification"
    FAILED = "Failed"
    EXPIRED = "Expired"


class NoticeEvent(str, Enum):
    """Events that drive notice status transitions"""
    DOCUMENT_GENERATED = "document_generated"
    DISPATCH_SUCCEEDED = "dispatch_succeeded"
    DISPATCH_FAILED = "dispatch_failed"
    ACK_REFUSED = "ack_refused"
    ACK_RECEIVED = "ack_received"
    VERIFICATION_CONFIRMED = "verification_confirmed"
    EXPIRED = "expired"


class NoticeType(str, Enum):
    """Acknowledgement classification by DPD"""
    PRE_LEGAL = "Pre-Legal"
    LEGAL = "Legal"


# ============================================================================
# Acknowledgements
# ============================================================================

class AcknowledgedBy(str, Enum):
    """Who acknowledged the notice"""
    BORROWER = "Borrower"
    FAMILY_MEMBER = "Family Member"
    LAWYER = "Lawyer"
    SECURITY_GUARD = "Security Guard"
    REFUSED = "Refused"


class AcknowledgementMode(str, Enum):
    """How the acknowledgement was captured"""
    IN_PERSON = "In Person"
    COURIER_RECEIPT = "Courier Receipt"
    EMAIL = "Email"
    SMS = "SMS"
    PHONE_CALL = "Phone Call"
