"""
Helper functions
"""
import re
import uuid
from datetime import date, datetime
from typing import Optional, Union


def parse_date(date_string: str) -> Optional[date]:
    """
    Parse a date string
    
    Args:
        date_string: date string
    
    Returns:
        date or None
    """
    date_formats = [
        "%Y-%m-%d",
        "%Y/%m/%d",
        "%d-%m-%Y",
        "%d/%m/%Y",
        "%Y%m%d",
    ]
    
    for fmt in date_formats:
        try:
            return datetime.strptime(date_string, fmt).date()
        except ValueError:
            continue
    
    return None


def as_date(value: Union[date, datetime, str]) -> date:
    """Coerce a datetime, date or ISO-like string to a calendar date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError(f"unrecognised date: {value!r}")
    return parsed


def normalize_text(text: str) -> str:
    """
    Collapse whitespace
    
    Args:
        text: input text
    
    Returns:
        normalized text
    """
    text = re.sub(r'\s+', ' ', text)
    text = text.strip()
    return text


def mask_personal_info(text: str, mask_char: str = "*") -> str:
    """
    Mask contact details and account numbers before logging
    
    Args:
        text: input text
        mask_char: mask character
    
    Returns:
        masked text
    """
    # 9876543210 -> 98******10
    text = re.sub(r'(?<!\d)(\d{2})\d{6}(\d{2})(?!\d)', r'\1' + mask_char * 6 + r'\2', text)
    
    # user@example.com -> u***@example.com
    text = re.sub(r'(\w{1,3})(\w*)(@\w+\.\w+)', r'\1' + mask_char * 3 + r'\3', text)
    
    # LN1234567 -> LN****567
    text = re.sub(r'\b(LN)(\d+)(\d{3})\b', lambda m: m.group(1) + mask_char * len(m.group(2)) + m.group(3), text)
    
    return text


def generate_uuid() -> str:
    """
    Generate a UUID
    
    Returns:
        UUID string
    """
    return str(uuid.uuid4())


def safe_filename(name: str) -> str:
    """Strip path separators and unusual characters from a file name"""
    name = name.replace("\\", "/").split("/")[-1]
    name = re.sub(r'[^A-Za-z0-9._-]+', '_', name).strip("._")
    return name or "document"


def coerce_enum(enum_cls, value, field: str):
    """
    Convert a raw value to an enum member
    
    Raises:
        ValidationError: value is not one of the enum's values
    """
    from src.utils.exceptions import ValidationError
    
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"{field} must be one of: {allowed}", field)
