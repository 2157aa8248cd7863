"""
T-Bank Session Layer

Client-side session handling for the T-Bank API: durable session storage,
interactive confirmation codes, wire-level traffic dumps and API date decoding.
"""

from .authorizer import Authorizer, ConsoleAuthorizer, StaticAuthorizer
from .dates import (
    Date, DateTimeMilliOffset, TimezoneResolver,
    parse_date, parse_datetime_milli_offset,
)
from .errors import (
    TBankSessionError, SessionStorageError, SessionDecodeError, SessionEncodeError,
    ConfirmationInputError, TrafficDumpError, DateDecodeError,
    TimezoneResolutionError,
)
from .models import Credential, Session
from .session_manager import AuthFlow, SessionManager
from .sessions import SessionStorage, JSONFileSessionStorage, InMemorySessionStorage
from .transport import TrafficRecorder, build_http_client

__version__ = "1.0.0"

__all__ = [
    "Authorizer",
    "ConsoleAuthorizer",
    "StaticAuthorizer",
    "Date",
    "DateTimeMilliOffset",
    "TimezoneResolver",
    "parse_date",
    "parse_datetime_milli_offset",
    "TBankSessionError",
    "SessionStorageError",
    "SessionDecodeError",
    "SessionEncodeError",
    "ConfirmationInputError",
    "TrafficDumpError",
    "DateDecodeError",
    "TimezoneResolutionError",
    "Credential",
    "Session",
    "AuthFlow",
    "SessionManager",
    "SessionStorage",
    "JSONFileSessionStorage",
    "InMemorySessionStorage",
    "TrafficRecorder",
    "build_http_client",
]
