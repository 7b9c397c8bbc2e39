"""
Helper function tests
"""
from datetime import date, datetime

import pytest

from src.utils.constants import AcknowledgementMode
from src.utils.exceptions import ValidationError
from src.utils.helpers import (
    as_date,
    coerce_enum,
    mask_personal_info,
    normalize_text,
    parse_date,
    safe_filename,
)


def test_parse_date_formats():
    assert parse_date("2025-07-21") == date(2025, 7, 21)
    assert parse_date("21/07/2025") == date(2025, 7, 21)
    assert parse_date("20250721") == date(2025, 7, 21)
    assert parse_date("next tuesday") is None


def test_as_date():
    assert as_date(datetime(2025, 7, 21, 23, 59)) == date(2025, 7, 21)
    assert as_date(date(2025, 7, 21)) == date(2025, 7, 21)
    assert as_date("2025-07-21") == date(2025, 7, 21)
    with pytest.raises(ValueError):
        as_date("soon")


def test_normalize_text():
    assert normalize_text("  City   Civil\nCourt  ") == "City Civil Court"


def test_mask_personal_info():
    """Contact details and account numbers are masked before logging"""
    assert mask_personal_info("call 9876543210") == "call 98******10"
    assert mask_personal_info("user@example.com") == "use***@example.com"
    assert mask_personal_info("account LN1234567") == "account LN****567"


def test_safe_filename():
    assert safe_filename("../../etc/passwd") == "passwd"
    assert safe_filename("signed copy (1).pdf") == "signed_copy_1_.pdf"
    assert safe_filename("...") == "document"


def test_coerce_enum():
    assert coerce_enum(AcknowledgementMode, "Courier Receipt", "mode") == AcknowledgementMode.COURIER_RECEIPT
    with pytest.raises(ValidationError) as exc_info:
        coerce_enum(AcknowledgementMode, "Pigeon", "acknowledgement_mode")
    assert exc_info.value.field == "acknowledgement_mode"
    assert "Courier Receipt" in exc_info.value.reason
