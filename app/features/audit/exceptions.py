"""
Audit error taxonomy.

Input errors are raised before a scan is queued; ScanError is the single
failure type of one scan attempt; AuditFailedError is what the outward layer
raises once every retry has been used up.
"""
from typing import Optional

from fastapi import status


class AuditError(Exception):
    """Base class for every audit failure surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message: str = "An error occurred while running the audit"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidUrlError(AuditError):
    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "The provided URL is not valid"


class UrlUnreachableError(AuditError):
    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "The provided URL is not reachable"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = status_code


class ScanError(AuditError):
    """One scan attempt failed. ``stage`` names the pipeline stage."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class AuditFailedError(AuditError):
    public_message = (
        "We could not complete the accessibility audit for this page. "
        "Please try again later or contact us directly and we will run it manually."
    )

    def __init__(self, message: str, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class AuditTimeoutError(AuditError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    public_message = "The audit took too long to complete. Please try again later."


class QueueClosedError(AuditError):
    """The queue no longer accepts work; retrying against it is pointless."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    public_message = "The audit service is restarting. Please try again shortly."
