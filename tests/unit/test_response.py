"""
Response envelope tests
"""
from src.utils.response import success_response, error_response


def test_success_response():
    response = success_response({"case_code": "LC-20250721-0001"}, "Case created")
    assert response["success"] is True
    assert response["data"] == {"case_code": "LC-20250721-0001"}
    assert response["error"] is None
    assert response["message"] == "Case created"


def test_success_response_without_message():
    response = success_response([])
    assert response["success"] is True
    assert "message" not in response


def test_error_response():
    response = error_response("INVALID_PREFIX", "bad prefix", {"field": "prefix"})
    assert response["success"] is False
    assert response["data"] is None
    assert response["error"] == {
        "code": "INVALID_PREFIX",
        "message": "bad prefix",
        "details": {"field": "prefix"},
    }
