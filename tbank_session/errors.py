"""
Error types raised by the session layer.

Every wrapper records the operation that failed and is raised with the
underlying exception chained as ``__cause__``.
"""

from typing import Optional


class TBankSessionError(Exception):
    """Base class for session layer errors"""

    def __init__(self, operation: str, detail: Optional[str] = None):
        self.operation = operation
        self.detail = detail
        message = operation if not detail else f"{operation}: {detail}"
        super().__init__(message)


class SessionStorageError(TBankSessionError, OSError):
    """Filesystem failure while reading or writing the session registry"""


class SessionDecodeError(TBankSessionError, ValueError):
    """Persisted session registry is malformed"""


class SessionEncodeError(TBankSessionError, ValueError):
    """Session record cannot be serialized to JSON"""


class ConfirmationInputError(TBankSessionError, OSError):
    """Confirmation code could not be read from the interactive channel"""


class TrafficDumpError(TBankSessionError, RuntimeError):
    """Request or response could not be serialized for the diagnostic sink"""


class DateDecodeError(TBankSessionError, ValueError):
    """Date or timestamp value in an API payload is malformed"""


class TimezoneResolutionError(TBankSessionError, LookupError):
    """API timezone could not be loaded"""
