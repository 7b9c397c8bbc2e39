"""
Custom exception classes

Every domain error carries an ``error_code`` and a ``category`` so callers can
tell "fix your input" (client) from "try again" (retryable) from "something
downstream is broken" (dependency).
"""
from typing import Optional, Any


CLIENT = "client"
RETRYABLE = "retryable"
DEPENDENCY = "dependency"


class LegalWorkflowError(Exception):
    """Base exception"""
    error_code = "LEGAL_WORKFLOW_ERROR"
    category = CLIENT


class ValidationError(LegalWorkflowError):
    """Raised when input fails validation"""
    error_code = "VALIDATION_ERROR"
    
    def __init__(self, message: str, field: str = None):
        self.field = field
        self.reason = message
        super().__init__(f"Validation failed: {message}")


class InvalidPrefixError(ValidationError):
    """Raised for a malformed identifier prefix or category code"""
    error_code = "INVALID_PREFIX"
    
    def __init__(self, value: Any, field: str = "prefix"):
        self.value = value
        super().__init__(
            f"{field} must be 2-10 uppercase alphanumeric characters, got {value!r}",
            field
        )


class InvalidDateRangeError(ValidationError):
    """Raised when a date falls outside its allowed range"""
    error_code = "INVALID_DATE_RANGE"
    
    def __init__(self, message: str, field: str = None, lower: Any = None, upper: Any = None):
        self.lower = lower
        self.upper = upper
        super().__init__(message, field)


class NotFoundError(LegalWorkflowError):
    """Raised when a referenced entity does not exist"""
    error_code = "NOT_FOUND"
    
    def __init__(self, entity: str, identifier: Any):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found: {identifier}")


class DuplicateNoticeError(LegalWorkflowError):
    """Raised when an equivalent notice was issued inside the suppression window"""
    error_code = "DUPLICATE_NOTICE"
    
    def __init__(
        self,
        loan_account_number: str,
        dpd_days: int,
        window_days: int,
        existing_notice_code: Optional[str] = None
    ):
        self.loan_account_number = loan_account_number
        self.dpd_days = dpd_days
        self.window_days = window_days
        self.existing_notice_code = existing_notice_code
        super().__init__(
            f"A notice for account {loan_account_number} with DPD {dpd_days} "
            f"was already generated within the last {window_days} days"
            + (f" ({existing_notice_code})" if existing_notice_code else "")
        )


class DuplicateAcknowledgementError(LegalWorkflowError):
    """Raised when a notice already has an acknowledgement"""
    error_code = "DUPLICATE_ACKNOWLEDGEMENT"
    
    def __init__(self, notice_id: Any, existing_code: Optional[str] = None):
        self.notice_id = notice_id
        self.existing_code = existing_code
        super().__init__(
            f"Notice {notice_id} is already acknowledged"
            + (f" ({existing_code})" if existing_code else "")
        )


class InvalidStateError(LegalWorkflowError):
    """Raised for a transition that is not allowed from the current status"""
    error_code = "INVALID_STATE"
    
    def __init__(self, current: Any, event: Any, message: Optional[str] = None):
        self.current = current
        self.event = event
        super().__init__(
            message or f"Transition '{_text(event)}' is not allowed from status '{_text(current)}'"
        )


class NoEligibleLawyerError(LegalWorkflowError):
    """Raised when no lawyer satisfies the assignment filters"""
    error_code = "NO_ELIGIBLE_LAWYER"
    
    def __init__(self, specialization: Optional[str] = None, jurisdiction: Optional[str] = None):
        self.specialization = specialization
        self.jurisdiction = jurisdiction
        super().__init__(
            f"No eligible lawyer available (specialization={specialization}, "
            f"jurisdiction={jurisdiction})"
        )


class AllocationConflictError(LegalWorkflowError):
    """Raised when the sequence allocator exhausts its retry budget"""
    error_code = "ALLOCATION_CONFLICT"
    category = RETRYABLE
    
    def __init__(self, partition_key: str, attempts: int):
        self.partition_key = partition_key
        self.attempts = attempts
        super().__init__(
            f"Could not allocate a sequence for {partition_key} after {attempts} attempts"
        )


class ExternalDependencyError(LegalWorkflowError):
    """Raised when storage or a collaborator times out or is unavailable"""
    error_code = "EXTERNAL_DEPENDENCY_ERROR"
    category = DEPENDENCY
    
    def __init__(self, dependency: str, message: str = "unavailable"):
        self.dependency = dependency
        super().__init__(f"{dependency}: {message}")


class OperationCancelledError(LegalWorkflowError):
    """Raised when the calling request context was cancelled"""
    error_code = "OPERATION_CANCELLED"
    category = RETRYABLE
    
    def __init__(self, operation: Optional[str] = None):
        self.operation = operation
        super().__init__(f"Operation cancelled: {operation}" if operation else "Operation cancelled")


def _text(value: Any) -> str:
    return getattr(value, "value", value)
