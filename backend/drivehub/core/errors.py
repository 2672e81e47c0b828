# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
DriveHub error hierarchy.

Each subclass fixes the HTTP status the API layer answers with; extra
context (resource, field, server...) rides along as attributes.
"""

from typing import Optional


class DriveHubError(Exception):
    """
    Base for every error the API turns into a JSON response.

    Args:
        message: Human-readable message, returned to clients as-is
        details: Optional structured context for the response body
    """

    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
        }


class NotFoundError(DriveHubError):
    """A file, execution or prompt does not exist (or is not visible to the caller)."""

    status_code = 404

    def __init__(self, resource: str, identifier: str, details: Optional[dict] = None):
        super().__init__(f"{resource} not found: {identifier}", details)
        self.resource = resource
        self.identifier = identifier


class ValidationError(DriveHubError):
    """Malformed request; `field` names the offending input when known."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details)
        self.field = field


class ConflictError(DriveHubError):
    status_code = 409

    def __init__(self, message: str, resource: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details)
        self.resource = resource


class SyncError(DriveHubError):
    """Sync operation failed or was rejected."""

    status_code = 409

    def __init__(self, message: str, file_id: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details)
        self.file_id = file_id


class MCPError(DriveHubError):
    """An MCP server could not be reached or answered with an error."""

    status_code = 502

    def __init__(self, message: str, server_url: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details)
        self.server_url = server_url


class ServiceUnavailableError(DriveHubError):
    status_code = 503

    def __init__(self, message: str, service: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details)
        self.service = service
