"""
Per-request deadline and cooperative cancellation

Workflow operations call checkpoint() between steps and hand the time left
to storage through storage_timeout(). Raising inside the session scope rolls
the whole transaction back, including any sequence number allocated so far.
"""
import threading
import time
from typing import Optional
from src.utils.exceptions import ExternalDependencyError, OperationCancelledError


class RequestContext:
    """Deadline plus a cancel flag shared with the caller"""
    
    def __init__(self, timeout_seconds: Optional[float] = None, operation: Optional[str] = None):
        self.operation = operation
        self.deadline = time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        self._cancelled = threading.Event()
    
    def cancel(self) -> None:
        self._cancelled.set()
    
    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()
    
    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline (None = no deadline)"""
        if self.deadline is None:
            return None
        return max(self.deadline - time.monotonic(), 0.0)
    
    def checkpoint(self, step: Optional[str] = None) -> None:
        """
        Stop here if the caller gave up
        
        Raises:
            OperationCancelledError: context was cancelled
            ExternalDependencyError: deadline passed
        """
        if self.cancelled:
            raise OperationCancelledError(step or self.operation)
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise ExternalDependencyError(
                "deadline", f"timed out before {step or self.operation or 'completion'}"
            )


def checkpoint(context: Optional[RequestContext], step: Optional[str] = None) -> None:
    """checkpoint() that tolerates a missing context"""
    if context is not None:
        context.checkpoint(step)


def storage_timeout(context: Optional[RequestContext]) -> Optional[float]:
    """Time left for storage calls made on behalf of the context"""
    if context is None:
        return None
    return context.remaining()
