from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")

# Upper bound of the INTEGER id and quantity columns
MAX_ID = 2**31 - 1


class ApiResponse(BaseModel, Generic[T]):
    """Envelope shared by every success and failure response"""
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    message: Optional[str] = None
    details: Optional[List[str]] = None


def ok(data: Any = None, message: Optional[str] = None) -> dict:
    return {"success": True, "data": data, "error": None, "message": message, "details": None}


def failure(error: str, message: Optional[str] = None, details: Optional[List[str]] = None) -> dict:
    return {"success": False, "data": None, "error": error, "message": message, "details": details}
