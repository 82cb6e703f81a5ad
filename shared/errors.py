"""
Shared error handling for the Todo Access Layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class AccessLayerException(Exception):
    """Base exception for Access Layer services."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class AuthenticationError(AccessLayerException):
    """Authentication-related errors."""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class ValidationError(AccessLayerException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ResourceNotFoundError(AccessLayerException):
    """Requested row does not exist or is not owned by the caller."""

    status_code = 404

    def __init__(self, resource: str, resource_id: int, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "NOT_FOUND",
            f"{resource} {resource_id} not found",
            {"resource": resource, "id": resource_id, **(details or {})}
        )


class InvalidKeyCombination(AccessLayerException):
    """Cache key requested with an unsupported mix of identifiers.

    Only reachable by calling the key space directly with bad arguments;
    the cache adapters never produce it.
    """

    status_code = 500

    def __init__(self, collection_id: Optional[int], item_id: Optional[int], family: str):
        super().__init__(
            "INVALID_KEY_COMBINATION",
            f"cannot resolve {family} field for collection_id={collection_id} item_id={item_id}",
            {"family": family, "collection_id": collection_id, "item_id": item_id}
        )


class StoreError(AccessLayerException):
    """Cache store failure, including timeouts."""

    status_code = 500

    def __init__(self, operation: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "CACHE_STORE_ERROR",
            f"cache {operation} failed: {message}",
            {"operation": operation, **(details or {})}
        )
        self.operation = operation


class SourceOfTruthError(AccessLayerException):
    """Relational store failure surfaced from the persistence layer."""

    status_code = 500

    def __init__(self, operation: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "SOURCE_OF_TRUTH_ERROR",
            f"{operation}: {message}",
            {"operation": operation, **(details or {})}
        )
        self.operation = operation
