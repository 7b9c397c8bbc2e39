"""
Notice creation, dispatch and acknowledgement tests
"""
from datetime import date, timedelta

import pytest
from sqlalchemy import select

from src.db.models.legal_notice import LegalNotice
from src.db.models.notice_dispatch_log import NoticeDispatchLog
from src.db.models.notice_status_log import NoticeStatusLog
from src.services.collaborators import LoggingNotificationDispatch
from src.utils.exceptions import (
    DuplicateAcknowledgementError,
    InvalidDateRangeError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


def issue(workflow, loan_account_number="LN1234567", dpd_days=65, **kwargs):
    params = {
        "trigger_type": "DPD Threshold",
        "template_ids": ["PRE_LEGAL_DEFAULT"],
        "communication_modes": ["Email", "SMS"],
        "legal_entity_name": "Acme Finance Ltd",
    }
    params.update(kwargs)
    return workflow.create_notice(loan_account_number, dpd_days, **params)


def test_notice_is_sent_after_dispatch(workflow, dispatcher, clock):
    notice = issue(workflow)
    
    assert notice.notice_code == "PLN-20250721-0001"
    assert notice.status == "Sent"
    assert notice.notice_expiry_date == clock.today() + timedelta(days=15)
    assert [m["channel"] for m in dispatcher.sent] == ["Email", "SMS"]
    assert "PLN-20250721-0001" in dispatcher.sent[0]["content"]
    assert "Acme Finance Ltd" in dispatcher.sent[0]["content"]


def test_status_and_dispatch_logs(db, workflow):
    notice = issue(workflow)
    
    with db.get_db_session() as session:
        transitions = session.execute(
            select(NoticeStatusLog.from_status, NoticeStatusLog.to_status)
            .where(NoticeStatusLog.notice_id == notice.notice_id)
            .order_by(NoticeStatusLog.id)
        ).all()
        channels = session.execute(
            select(NoticeDispatchLog.channel, NoticeDispatchLog.success)
            .where(NoticeDispatchLog.notice_id == notice.notice_id)
        ).all()
    
    assert [tuple(t) for t in transitions] == [(None, "Draft"), ("Draft", "Sent")]
    assert sorted(tuple(c) for c in channels) == [("Email", True), ("SMS", True)]


def test_partial_delivery_counts_as_sent(workflow):
    workflow.dispatcher = LoggingNotificationDispatch(failing_channels=["SMS"])
    assert issue(workflow).status == "Sent"


def test_no_delivery_marks_failed(workflow):
    workflow.dispatcher = LoggingNotificationDispatch(failing_channels=["Email", "SMS"])
    notice = issue(workflow)
    
    assert notice.status == "Failed"
    with pytest.raises(InvalidStateError):
        workflow.dispatch_notice(notice.notice_id)


def test_dispatcher_exception_is_a_failed_attempt(workflow):
    class Broken:
        def send(self, channel, recipient, content):
            raise ConnectionError("gateway down")
    
    workflow.dispatcher = Broken()
    assert issue(workflow, communication_modes=["Email"]).status == "Failed"


def test_generated_then_dispatched(workflow):
    notice = issue(workflow, dispatch=False)
    assert notice.status == "Draft"
    
    generated = workflow.mark_notice_generated(notice.notice_id, "/docs/PLN-20250721-0001.pdf")
    assert generated.status == "Generated"
    assert generated.document_path == "/docs/PLN-20250721-0001.pdf"
    
    assert workflow.dispatch_notice(notice.notice_id).status == "Sent"


def test_notice_input_validation(workflow):
    with pytest.raises(ValidationError):
        issue(workflow, dpd_days=-1)
    with pytest.raises(ValidationError):
        issue(workflow, template_ids=[])
    with pytest.raises(ValidationError):
        issue(workflow, communication_modes=["Fax"])
    with pytest.raises(NotFoundError):
        issue(workflow, template_ids=["NO_SUCH_TEMPLATE"])
    with pytest.raises(NotFoundError):
        issue(workflow, loan_account_number="LN0000001")
    with pytest.raises(InvalidDateRangeError):
        issue(workflow, notice_expiry_date=date(2025, 7, 1))
    
    # nothing was allocated by the rejected calls
    assert workflow.get_sequence_status("PLN")["current_value"] == 0


def test_acknowledgement_moves_notice_to_pending(workflow, clock):
    notice = issue(workflow)
    
    ack = workflow.record_acknowledgement(
        notice.notice_id, "Borrower", clock.today(), "In Person", captured_by="field.agent"
    )
    
    assert ack.acknowledgement_code == "ACKN-20250721-0001"
    assert ack.status == "Pending Verification"
    assert ack.notice_type == "Pre-Legal"
    assert ack.borrower_name == "Ravi Kumar"
    assert workflow.get_notice(notice.notice_id).status == "Pending Verification"


def test_refusal_closes_notice(workflow, clock):
    notice = issue(workflow, dpd_days=120)
    
    ack = workflow.record_acknowledgement(notice.notice_id, "Refused", clock.today(), "Courier Receipt")
    
    assert ack.status == "Refused"
    assert ack.notice_type == "Legal"
    assert workflow.get_notice(notice.notice_id).status == "Refused"


def test_verification_completes_acknowledgement(workflow, clock):
    notice = issue(workflow)
    ack = workflow.record_acknowledgement(notice.notice_id, "Family Member", clock.today(), "In Person",
                                          relationship_to_borrower="Spouse")
    
    verified = workflow.verify_acknowledgement(ack.acknowledgement_id, verified_by="supervisor")
    
    assert verified.status == "Acknowledged"
    assert verified.verified_by == "supervisor"
    assert workflow.get_notice(notice.notice_id).status == "Acknowledged"
    with pytest.raises(InvalidStateError):
        workflow.verify_acknowledgement(ack.acknowledgement_id)


def test_draft_notice_cannot_be_acknowledged(workflow, clock):
    notice = issue(workflow, dispatch=False)
    with pytest.raises(InvalidStateError):
        workflow.record_acknowledgement(notice.notice_id, "Borrower", clock.today(), "In Person")
    assert workflow.get_sequence_status("ACKN")["current_value"] == 0


def test_second_acknowledgement_is_duplicate(workflow, clock):
    """Reported as a duplicate even though the notice is no longer Sent"""
    notice = issue(workflow)
    workflow.record_acknowledgement(notice.notice_id, "Borrower", clock.today(), "In Person")
    
    with pytest.raises(DuplicateAcknowledgementError) as exc_info:
        workflow.record_acknowledgement(notice.notice_id, "Borrower", clock.today(), "In Person")
    assert exc_info.value.existing_code == "ACKN-20250721-0001"


def test_acknowledgement_date_bounds(workflow, clock):
    notice = issue(workflow)
    
    with pytest.raises(InvalidDateRangeError):
        workflow.record_acknowledgement(notice.notice_id, "Borrower", date(2025, 7, 20), "In Person")
    with pytest.raises(InvalidDateRangeError):
        workflow.record_acknowledgement(notice.notice_id, "Borrower", date(2025, 7, 22), "In Person")
    with pytest.raises(NotFoundError):
        workflow.record_acknowledgement(9999, "Borrower", clock.today(), "In Person")


def test_acknowledgement_with_proof(workflow, clock, tmp_path):
    notice = issue(workflow)
    ack = workflow.record_acknowledgement(
        notice.notice_id, "Borrower", clock.today(), "Courier Receipt",
        proof_document=b"%PDF-1.4 signed receipt", proof_filename="receipt.pdf"
    )
    
    assert ack.proof_path.startswith(str(tmp_path / "uploads"))
    assert ack.proof_path.endswith("_receipt.pdf")


def test_rejected_acknowledgement_leaves_no_proof(workflow, clock, tmp_path):
    notice = issue(workflow, dispatch=False)
    with pytest.raises(InvalidStateError):
        workflow.record_acknowledgement(
            notice.notice_id, "Borrower", clock.today(), "In Person",
            proof_document=b"scan", proof_filename="scan.jpg"
        )
    assert not list((tmp_path / "uploads").glob("**/*.jpg"))


def test_expire_overdue_notices(workflow, clock):
    overdue = issue(workflow, notice_expiry_date=date(2025, 7, 25))
    acknowledged = issue(workflow, dpd_days=66, notice_expiry_date=date(2025, 7, 25))
    workflow.record_acknowledgement(acknowledged.notice_id, "Borrower", clock.today(), "In Person")
    issue(workflow, dpd_days=67, notice_expiry_date=date(2025, 8, 30))
    
    expired = workflow.expire_overdue_notices(date(2025, 7, 26))
    
    assert expired == [overdue.notice_code]
    assert workflow.get_notice(overdue.notice_id).status == "Expired"
    assert workflow.expire_overdue_notices(date(2025, 7, 26)) == []


def test_list_notices_filters(workflow):
    issue(workflow)
    issue(workflow, loan_account_number="LN4567890", dispatch=False)
    
    assert len(workflow.list_notices()) == 2
    assert [n.status for n in workflow.list_notices(status="Draft")] == ["Draft"]
    assert len(workflow.list_notices(loan_account_number="LN4567890")) == 1


def test_notice_preview(workflow):
    preview = workflow.generate_notice_preview("LN4567890", ["LEGAL_DEFAULT"], dpd_days=95)
    assert preview["borrower_name"] == "Anita Desai"
    assert "95 days past due" in preview["content"]
    assert workflow.list_notices() == []


def test_claimed_notice_is_not_dispatched_again(db, workflow, dispatcher, clock):
    notice = issue(workflow, dispatch=False)
    with db.get_db_session() as session:
        session.get(LegalNotice, notice.notice_id).dispatch_started_at = clock.now()
    
    with pytest.raises(InvalidStateError):
        workflow.dispatch_notice(notice.notice_id)
    assert dispatcher.sent == []
    assert workflow.get_notice(notice.notice_id).status == "Draft"


def test_dispatch_claim_is_recorded(workflow, clock):
    notice = issue(workflow)
    assert workflow.get_notice(notice.notice_id).dispatch_started_at == clock.now()
