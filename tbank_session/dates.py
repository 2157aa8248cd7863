"""
API Date Decoding Module

The T-Bank API encodes dates two ways:

* offset timestamps such as ``2021-06-15T10:30:00.123+03:00``, which carry
  their own UTC offset, and
* calendar dates such as ``2021-06-15``, which mean midnight in the bank's
  timezone (Europe/Moscow), whatever timezone the client machine runs in.

The bank timezone is loaded lazily, once per process. The loaded zone, or the
error raised while loading it, is cached and handed to every later caller.
"""

import re
import threading
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Annotated, Any, Callable, Dict, Generic, Optional, TypeVar
from zoneinfo import ZoneInfo

from pydantic import BeforeValidator, PlainSerializer

from .config import get_config
from .errors import DateDecodeError, TimezoneResolutionError
from .logging_config import get_logger

logger = get_logger("tbank.dates")

T = TypeVar("T")

OFFSET_TIMESTAMP_PATTERN = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d{1,9}))?([+-])(\d{2}):(\d{2})",
    re.ASCII,
)
CALENDAR_DATE_PATTERN = re.compile(r"(\d{4})-(\d{2})-(\d{2})", re.ASCII)


class LazyValue(Generic[T]):
    """
    Value computed on first demand and cached for the life of the object.

    The factory runs at most once, even when several threads ask at the same
    time. If it raises, the exception is cached and re-raised to every caller
    instead of retrying.
    """

    def __init__(self, factory: Callable[[], T]):
        self._factory = factory
        self._lock = threading.Lock()
        self._done = False
        self._value: Optional[T] = None
        self._error: Optional[BaseException] = None
        self._traceback = None

    @property
    def resolved(self) -> bool:
        return self._done

    def get(self) -> T:
        if not self._done:
            with self._lock:
                if not self._done:
                    try:
                        self._value = self._factory()
                    except Exception as e:
                        self._error = e
                        self._traceback = e.__traceback__
                    self._done = True

        if self._error is not None:
            raise self._error.with_traceback(self._traceback)
        return self._value


class TimezoneResolver:
    """Lazily loads a named timezone once and replays the outcome"""

    def __init__(self, name: str, loader: Callable[[str], tzinfo] = ZoneInfo):
        self.name = name
        self._loader = loader
        self._lazy: LazyValue[tzinfo] = LazyValue(self._load)

    def _load(self) -> tzinfo:
        try:
            location = self._loader(self.name)
        except Exception as e:
            logger.error("Failed to load timezone %s: %s", self.name, e)
            raise TimezoneResolutionError("load location", f"{self.name}: {e}") from e

        logger.debug("Loaded timezone %s", self.name)
        return location

    def get(self) -> tzinfo:
        """Get the timezone, loading it on first call"""
        return self._lazy.get()


_default_resolvers: Dict[str, TimezoneResolver] = {}
_default_resolvers_lock = threading.Lock()


def default_timezone_resolver() -> TimezoneResolver:
    """
    Process-wide resolver for the bank timezone.

    The zone name is read from the current configuration on every call, so
    reload_config() takes effect. Each zone name gets one shared resolver.
    """
    name = get_config().date_timezone
    with _default_resolvers_lock:
        resolver = _default_resolvers.get(name)
        if resolver is None:
            resolver = TimezoneResolver(name)
            _default_resolvers[name] = resolver
    return resolver


def parse_datetime_milli_offset(value: str) -> datetime:
    """
    Parse an offset timestamp like ``2021-06-15T10:30:00.123+03:00``.

    The fraction is optional; digits beyond microseconds are dropped.

    Returns:
        Timezone-aware datetime with the fixed offset from the value

    Raises:
        DateDecodeError: If the value does not match the format
    """
    if not isinstance(value, str):
        raise DateDecodeError("parse timestamp", f"expected a string, got {type(value).__name__}")

    match = OFFSET_TIMESTAMP_PATTERN.fullmatch(value)
    if not match:
        raise DateDecodeError("parse timestamp", f"invalid value {value!r}")

    year, month, day, hour, minute, second, fraction, sign, off_hours, off_minutes = match.groups()
    microsecond = int((fraction or "").ljust(6, "0")[:6])

    try:
        offset = timedelta(hours=int(off_hours), minutes=int(off_minutes))
        tz = timezone(-offset if sign == "-" else offset)
        return datetime(int(year), int(month), int(day), int(hour), int(minute),
                        int(second), microsecond, tzinfo=tz)
    except ValueError as e:
        raise DateDecodeError("parse timestamp", f"invalid value {value!r}: {e}") from e


def format_datetime_milli_offset(value: datetime) -> str:
    """
    Encode an aware datetime as an offset timestamp.

    Milliseconds are written, or microseconds when the value has a
    sub-millisecond part, so decoding the result gives the same instant.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError("timestamp must be timezone-aware")
    timespec = "microseconds" if value.microsecond % 1000 else "milliseconds"
    return value.isoformat(timespec=timespec)


def parse_date(value: str, resolver: Optional[TimezoneResolver] = None) -> datetime:
    """
    Parse a calendar date like ``2021-06-15`` as midnight in the bank timezone.

    Args:
        value: Date string
        resolver: Timezone resolver; the process-wide bank timezone by default

    Returns:
        Timezone-aware datetime at local midnight of that date

    Raises:
        DateDecodeError: If the value does not match the format
        TimezoneResolutionError: If the bank timezone cannot be loaded
    """
    location = (resolver or default_timezone_resolver()).get()

    if not isinstance(value, str):
        raise DateDecodeError("parse date", f"expected a string, got {type(value).__name__}")

    match = CALENDAR_DATE_PATTERN.fullmatch(value)
    if not match:
        raise DateDecodeError("parse date", f"invalid value {value!r}")

    year, month, day = (int(part) for part in match.groups())
    try:
        return datetime(year, month, day, tzinfo=location)
    except ValueError as e:
        raise DateDecodeError("parse date", f"invalid value {value!r}: {e}") from e


def format_date(value: datetime, resolver: Optional[TimezoneResolver] = None) -> str:
    """Encode the calendar date of a datetime, as seen in the bank timezone"""
    if value.tzinfo is not None:
        value = value.astimezone((resolver or default_timezone_resolver()).get())
    return date(value.year, value.month, value.day).isoformat()


def _decode_offset_timestamp(value: Any) -> Any:
    if isinstance(value, datetime):
        return value
    return parse_datetime_milli_offset(value)


def _decode_calendar_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return value
    return parse_date(value)


# Field types for response models: string values go through the decoders above
DateTimeMilliOffset = Annotated[
    datetime,
    BeforeValidator(_decode_offset_timestamp),
    PlainSerializer(format_datetime_milli_offset, return_type=str, when_used="json"),
]

Date = Annotated[
    datetime,
    BeforeValidator(_decode_calendar_date),
    PlainSerializer(format_date, return_type=str, when_used="json"),
]
