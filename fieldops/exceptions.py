"""
Dispatch Exceptions

Error kinds raised synchronously by the dispatch core. Side-effect failures
(notifications, calendar cleanup, chat archival) never surface as one of these.
"""

from typing import Optional


class DispatchError(Exception):
    """Base exception for dispatch core errors"""

    status_code = 400

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def kind(self) -> str:
        return type(self).__name__


class NotFound(DispatchError):
    """Referenced quote, job or team member is absent"""

    status_code = 404


class AlreadyAccepted(DispatchError):
    """Duplicate acceptance attempt on a quote"""

    status_code = 409


class InvalidStateTransition(DispatchError):
    """Illegal job status change"""

    status_code = 409

    def __init__(self, current: Optional[str], target: str, reason: Optional[str] = None):
        message = reason or f"Cannot transition from '{current}' to '{target}'"
        super().__init__(message, {"current": current, "target": target})
        self.current = current
        self.target = target


class IneligibleAssignment(DispatchError):
    """Technician fails skill, certification or availability checks"""

    status_code = 422


class TransactionFailed(DispatchError):
    """Underlying atomic write failed or was aborted"""

    status_code = 503
