"""
Common response envelope helpers
"""
from typing import Any, Optional, Dict
from pydantic import BaseModel


class BaseResponse(BaseModel):
    """Response envelope"""
    success: bool
    data: Any = None
    error: Optional[Dict[str, Any]] = None


def success_response(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """
    Build a success response
    
    Args:
        data: payload
        message: optional message
    
    Returns:
        response dict
    """
    response = {
        "success": True,
        "data": data,
        "error": None
    }
    
    if message:
        response["message"] = message
    
    return response


def error_response(
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Build an error response
    
    Args:
        code: error code
        message: error message
        details: extra details
    
    Returns:
        response dict
    """
    return {
        "success": False,
        "data": None,
        "error": {
            "code": code,
            "message": message,
            "details": details
        }
    }
