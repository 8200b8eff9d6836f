"""
Custom exceptions for the MongoDB operator.

This module defines all custom exceptions raised by the reconciliation core
for consistent error handling and reporting.
"""
from typing import Optional, Dict, Any
from fastapi import status


class OperatorException(Exception):
    """
    Base exception for all operator errors.

    All custom exceptions should inherit from this base class.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(OperatorException):
    """
    Raised when reconciliation parameters fail validation.

    Used for an empty StatefulSet name or namespace and unparsable storage sizes.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class ConflictError(OperatorException):
    """
    Raised when the API server rejects a write because of a conflict.

    Used for stale resource versions on update and already-existing objects on create.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
        )


class KubernetesError(OperatorException):
    """
    Raised when Kubernetes API operations fail.

    Used for K8s API errors, connection issues, authorization failures, etc.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Kubernetes error: {message}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
        )


class PatchCalculationError(OperatorException):
    """
    Raised when the patch between stored and desired objects cannot be computed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Patch calculation failed: {message}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
        )


class InconsistentStateError(OperatorException):
    """
    Raised when a stored or synthesized object is missing where one is required.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
        )


# Export all exceptions
__all__ = [
    "OperatorException",
    "ValidationError",
    "ConflictError",
    "KubernetesError",
    "PatchCalculationError",
    "InconsistentStateError",
]
