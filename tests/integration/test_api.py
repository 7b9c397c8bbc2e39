"""
HTTP API tests
"""
import pytest

from src.utils.exceptions import ExternalDependencyError


@pytest.fixture
def lawyer_payload():
    return {
        "first_name": "Meera",
        "last_name": "Iyer",
        "email": "meera.iyer@example.com",
        "bar_number": "MH/1234/2010",
        "lawyer_type": "Senior",
        "specialization": "Civil Recovery",
        "jurisdiction": "Mumbai",
        "experience_years": 14,
        "max_case_load": 20,
        "success_rate_percent": 82.5,
    }


@pytest.fixture
def case_payload():
    return {
        "loan_account_number": "LN1234567",
        "case_type": "Civil",
        "court_name": "City Civil Court, Mumbai",
        "case_filed_date": "2025-07-01",
        "filing_jurisdiction": "Mumbai",
    }


@pytest.fixture
def notice_payload():
    return {
        "loan_account_number": "LN4567890",
        "dpd_days": 62,
        "trigger_type": "DPD Threshold",
        "template_ids": ["PRE_LEGAL_DEFAULT"],
        "communication_modes": ["Email"],
    }


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"


def test_lawyer_endpoints(client, lawyer_payload):
    response = client.post("/lawyers", json=lawyer_payload)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["lawyer_code"] == "LAW-20250721-0001"
    assert body["data"]["success_rate_percent"] == 82.5
    lawyer_id = body["data"]["lawyer_id"]
    
    workload = client.get(f"/lawyers/{lawyer_id}/workload").json()["data"]
    assert workload["remaining_capacity"] == 20
    
    candidates = client.get("/lawyers/candidates", params={"jurisdiction": "mumbai"}).json()["data"]
    assert [c["lawyer_id"] for c in candidates] == [lawyer_id]
    
    response = client.patch(f"/lawyers/{lawyer_id}/availability", json={"is_available": False})
    assert response.json()["data"]["is_available"] is False
    assert client.get("/lawyers/candidates").json()["data"] == []


def test_case_assignment_flow(client, lawyer_payload, case_payload):
    lawyer_id = client.post("/lawyers", json=lawyer_payload).json()["data"]["lawyer_id"]
    response = client.post("/cases", json=case_payload)
    assert response.status_code == 201
    case = response.json()["data"]
    assert case["case_code"] == "LC-20250721-0001"
    
    response = client.post(f"/cases/{case['case_id']}/assign", json={"specialization": "Civil"})
    assert response.status_code == 200
    assert response.json()["data"]["lawyer_id"] == lawyer_id
    
    response = client.post(f"/cases/{case['case_id']}/close", json={"outcome_summary": "Settled"})
    assert response.json()["data"]["case_status"] == "Closed"
    
    timeline = client.get(f"/cases/{case['case_id']}/timeline").json()["data"]
    assert [e["event_type"] for e in timeline] == ["CREATED", "ASSIGNED", "CLOSED"]


def test_notice_and_acknowledgement_flow(client, notice_payload):
    response = client.post("/notices", json=notice_payload)
    assert response.status_code == 201
    notice = response.json()["data"]
    assert notice["status"] == "Sent"
    assert notice["communication_modes"] == ["Email"]
    
    response = client.post("/acknowledgements", json={
        "notice_id": notice["notice_id"],
        "acknowledged_by": "Security Guard",
        "acknowledgement_date": "2025-07-21",
        "acknowledgement_mode": "Courier Receipt",
    })
    assert response.status_code == 201
    ack = response.json()["data"]
    assert ack["acknowledgement_code"] == "ACKN-20250721-0001"
    assert ack["status"] == "Pending Verification"
    
    response = client.post(f"/acknowledgements/{ack['acknowledgement_id']}/verify", json={"verified_by": "ops"})
    assert response.json()["data"]["status"] == "Acknowledged"
    assert client.get(f"/notices/{notice['notice_id']}").json()["data"]["status"] == "Acknowledged"


def test_acknowledgement_with_proof_upload(client, notice_payload):
    notice_id = client.post("/notices", json=notice_payload).json()["data"]["notice_id"]
    
    response = client.post(
        "/acknowledgements/with-proof",
        data={
            "notice_id": str(notice_id),
            "acknowledged_by": "Borrower",
            "acknowledgement_date": "2025-07-21",
            "acknowledgement_mode": "In Person",
        },
        files={"proof": ("receipt.pdf", b"%PDF-1.4", "application/pdf")},
    )
    assert response.status_code == 201
    assert response.json()["data"]["proof_path"].endswith("_receipt.pdf")


def test_duplicate_notice_is_conflict(client, notice_payload):
    client.post("/notices", json=notice_payload)
    response = client.post("/notices", json=notice_payload)
    
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "DUPLICATE_NOTICE"


def test_invalid_transition_is_conflict(client, notice_payload):
    notice_payload["dispatch"] = False
    notice_id = client.post("/notices", json=notice_payload).json()["data"]["notice_id"]
    response = client.post(f"/notices/{notice_id}/dispatch")
    assert response.status_code == 200
    
    response = client.post(f"/notices/{notice_id}/dispatch")
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "INVALID_STATE"


def test_not_found(client):
    response = client.get("/cases/999")
    assert response.status_code == 404
    assert response.json()["error"]["details"] == {"entity": "case"}


def test_invalid_prefix_is_bad_request(client):
    response = client.get("/sequences/lc")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_PREFIX"


def test_sequence_status(client, case_payload):
    client.post("/cases", json=case_payload)
    data = client.get("/sequences/LC").json()["data"]
    assert data["current_value"] == 1
    assert data["next_identifier"] == "LC-20250721-0002"
    
    counters = client.get("/sequences").json()["data"]
    assert [c["partition_key"] for c in counters] == ["LC-20250721"]


def test_request_validation(client, notice_payload):
    notice_payload["dpd_days"] = -5
    response = client.post("/notices", json=notice_payload)
    assert response.status_code == 422
    assert response.json()["error"]["details"]["field"] == "dpd_days"


def test_no_eligible_lawyer_is_conflict(client, case_payload):
    case_id = client.post("/cases", json=case_payload).json()["data"]["case_id"]
    response = client.post(f"/cases/{case_id}/assign", json={})
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "NO_ELIGIBLE_LAWYER"


def test_dependency_errors_are_retryable(client, workflow, monkeypatch):
    def unavailable(*args, **kwargs):
        raise ExternalDependencyError("database", "storage unavailable or timed out")
    
    monkeypatch.setattr(workflow, "get_case", unavailable)
    response = client.get("/cases/1")
    
    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert "storage" not in response.json()["error"]["message"]
