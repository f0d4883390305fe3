"""Domain exceptions raised by the service layer.

Routers translate these into HTTP responses; services never import FastAPI.
"""
from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base class carrying a user-facing message and optional context."""

    status_code = 500

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ValidationError(ServiceError):
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class AuthorizationError(ServiceError):
    status_code = 403


class DatabaseError(ServiceError):
    status_code = 500


class ExternalServiceError(ServiceError):
    """Raised when a hosted collaborator (auth, storage) misbehaves."""

    status_code = 503
