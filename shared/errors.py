"""
Shared error handling for the Kitchen Display Service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from .logging import get_request_id


class ErrorResponse(BaseModel):
    """Standard error response format."""
    
    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AccessLayerException(Exception):
    """Base exception for service errors."""

    status_code: int = 400
    
    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)
    
    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            trace_id=get_request_id(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ExternalServiceError(AccessLayerException):
    """External service errors."""
    
    status_code = 502

    def __init__(self, code: str, service: str, message: str = "External service error",
                 details: Optional[Dict[str, Any]] = None):
        self.service = service
        super().__init__(code, f"{service}: {message}", details)
