# ============================================================================
# FILE: cloudly/core/exceptions.py
# ============================================================================
"""
Domain errors raised by the service layer.

Each error carries the HTTP status it maps to; a single exception handler in
cloudly.main turns them into {"detail": ...} responses.
"""
from typing import Any, List, Optional

class CloudlyError(Exception):
    """Base class for expected, client-reportable failures"""
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

class ValidationFailedError(CloudlyError):
    status_code = 400

    def __init__(self, detail: str, errors: Optional[List[Any]] = None):
        super().__init__(detail)
        self.errors = errors or []

class PermissionDeniedError(CloudlyError):
    status_code = 403

class NotFoundError(CloudlyError):
    status_code = 404

class ConflictError(CloudlyError):
    status_code = 409

class OperationFailedError(CloudlyError):
    """A storage-backed operation could not complete (e.g. deadline exceeded)"""
    status_code = 500

class MediaStorageError(CloudlyError):
    """The media provider rejected or failed an upload on the primary path"""
    status_code = 502
