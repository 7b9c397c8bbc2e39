"""
Clock and request context tests
"""
from datetime import date, datetime

import pytest

from src.services.request_context import RequestContext, checkpoint, storage_timeout
from src.utils.clock import FixedClock, SystemClock
from src.utils.exceptions import ExternalDependencyError, OperationCancelledError


def test_fixed_clock_advance():
    clock = FixedClock(datetime(2025, 7, 21, 23, 59))
    assert clock.today() == date(2025, 7, 21)
    clock.advance(minutes=2)
    assert clock.today() == date(2025, 7, 22)
    clock.set(datetime(2026, 1, 1))
    assert clock.now() == datetime(2026, 1, 1)


def test_system_clock_returns_naive_time():
    assert SystemClock().now().tzinfo is None


def test_checkpoint_after_cancel():
    context = RequestContext(operation="create_case")
    context.checkpoint("start")
    context.cancel()
    assert context.cancelled
    with pytest.raises(OperationCancelledError) as exc_info:
        context.checkpoint("insert")
    assert exc_info.value.operation == "insert"


def test_checkpoint_after_deadline():
    context = RequestContext(timeout_seconds=0)
    assert context.remaining() == 0.0
    with pytest.raises(ExternalDependencyError):
        context.checkpoint()


def test_checkpoint_without_context():
    checkpoint(None, "anything")
    assert RequestContext().remaining() is None


def test_storage_timeout_follows_deadline():
    assert storage_timeout(None) is None
    assert storage_timeout(RequestContext()) is None
    remaining = storage_timeout(RequestContext(timeout_seconds=5))
    assert 0 < remaining <= 5
    assert storage_timeout(RequestContext(timeout_seconds=0)) == 0.0
