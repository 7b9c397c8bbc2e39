"""
Duplicate notice suppression tests
"""
import pytest

from src.services.collaborators import LoggingNotificationDispatch
from src.services.duplicate_guard import DuplicateNoticeGuard
from src.utils.exceptions import DuplicateNoticeError


def issue(workflow, dpd_days=62, loan_account_number="LN4567890"):
    return workflow.create_notice(
        loan_account_number,
        dpd_days,
        "DPD Threshold",
        ["PRE_LEGAL_DEFAULT"],
        ["Email"],
        notice_expiry_date="2025-12-31",
    )


def test_repeat_within_window_is_rejected(workflow, clock):
    first = issue(workflow)
    clock.advance(days=3)
    
    with pytest.raises(DuplicateNoticeError) as exc_info:
        issue(workflow)
    assert exc_info.value.existing_notice_code == first.notice_code


def test_rejection_leaves_no_sequence_gap(workflow):
    assert issue(workflow).notice_code == "PLN-20250721-0001"
    with pytest.raises(DuplicateNoticeError):
        issue(workflow)
    
    assert issue(workflow, dpd_days=63).notice_code == "PLN-20250721-0002"


def test_window_is_inclusive(workflow, clock):
    issue(workflow)
    
    clock.advance(days=7)
    with pytest.raises(DuplicateNoticeError):
        issue(workflow)
    
    clock.advance(days=1)
    assert issue(workflow).notice_code == "PLN-20250729-0001"


def test_other_account_or_dpd_is_not_a_duplicate(workflow):
    issue(workflow)
    issue(workflow, dpd_days=90)
    issue(workflow, loan_account_number="LN1234567")
    
    assert len(workflow.list_notices()) == 3


def test_failed_notice_still_counts(workflow):
    workflow.dispatcher = LoggingNotificationDispatch(failing_channels=["Email"])
    assert issue(workflow).status == "Failed"
    with pytest.raises(DuplicateNoticeError):
        issue(workflow)


def test_window_start(clock):
    guard = DuplicateNoticeGuard(clock, window_days=7)
    start = guard.window_start()
    assert start.isoformat() == "2025-07-14T00:00:00"


def test_check_runs_while_counter_is_held(workflow, monkeypatch):
    """The notice code is allocated before the duplicate check in one transaction"""
    calls = []
    allocate = workflow.allocator.allocate
    check = workflow.guard.check_duplicate
    
    def recording_allocate(*args, **kwargs):
        calls.append(("allocate", kwargs.get("db_session")))
        return allocate(*args, **kwargs)
    
    def recording_check(session, *args, **kwargs):
        calls.append(("check", session))
        return check(session, *args, **kwargs)
    
    monkeypatch.setattr(workflow.allocator, "allocate", recording_allocate)
    monkeypatch.setattr(workflow.guard, "check_duplicate", recording_check)
    issue(workflow)
    
    assert [name for name, _ in calls] == ["allocate", "check"]
    assert calls[0][1] is not None
    assert calls[0][1] is calls[1][1]
