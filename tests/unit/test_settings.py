"""
Settings validation tests
"""
import pytest
from pydantic import ValidationError

from config.settings import Settings


def test_defaults():
    config = Settings(_env_file=None)
    assert config.lawyer_selection_strategy == "load_balance"
    assert config.duplicate_notice_window_days == 7
    assert config.sequence_pad_width == 4
    assert config.max_file_size_bytes == 10 * 1024 * 1024


def test_cors_origins_list():
    config = Settings(_env_file=None, cors_origins="http://a.test, http://b.test")
    assert config.cors_origins_list == ["http://a.test", "http://b.test"]


@pytest.mark.parametrize("field,value", [
    ("lawyer_selection_strategy", "random"),
    ("sequence_max_attempts", 0),
    ("sequence_pad_width", 0),
    ("duplicate_notice_window_days", -1),
])
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})
