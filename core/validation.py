"""
CLARK Entities - Input Validation Utilities

Centralized helpers for the checks shared across entities: trimming,
e-mail structure, and the epoch-millisecond timestamps used on the wire.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Optional

from core.errors import InvalidDate


# Structural e-mail check: something@something.tld, no whitespace
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Persisted timestamps are epoch milliseconds rendered as strings
EPOCH_MILLIS_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")


def is_blank(value: Any) -> bool:
    """True for None and for strings that are empty after trimming."""
    return value is None or (isinstance(value, str) and not value.strip())


def trimmed(value: Optional[str]) -> Optional[str]:
    """Strip surrounding whitespace, passing None through."""
    if value is None:
        return None
    return str(value).strip()


@lru_cache(maxsize=1024)
def is_valid_email(email: str) -> bool:
    """
    Check an e-mail address against the structural pattern.

    Only the shape is checked; deliverability is the application's concern.
    """
    if not isinstance(email, str):
        return False
    return EMAIL_PATTERN.match(email.strip()) is not None


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ONE_MILLISECOND = timedelta(milliseconds=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def truncate_to_millis(moment: datetime) -> datetime:
    return moment.replace(microsecond=moment.microsecond - moment.microsecond % 1000)


def next_timestamp(previous: Optional[datetime]) -> datetime:
    """
    Current time at millisecond resolution, forced strictly past ``previous``.

    Last-modified dates are serialized as epoch milliseconds, so two
    mutations inside the same millisecond still produce distinct values.
    """
    now = truncate_to_millis(utc_now())
    if previous is not None:
        floor = truncate_to_millis(previous)
        if now <= floor:
            return floor + ONE_MILLISECOND
    return now


def epoch_millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - EPOCH) // ONE_MILLISECOND


def to_epoch_millis(moment: datetime) -> str:
    """Render a timestamp in the persisted epoch-milliseconds format."""
    return str(epoch_millis(moment))


def parse_timestamp(value: Any, field_name: str = "date") -> datetime:
    """
    Parse a persisted timestamp.

    Accepts epoch milliseconds (int, float or numeric string), ISO-8601
    strings, and datetime instances. Naive datetimes are taken as UTC.

    Raises:
        InvalidDate: If the value cannot be interpreted as a timestamp
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    if isinstance(value, bool):
        raise InvalidDate(value, field_name=field_name)

    if isinstance(value, (int, float)):
        return _from_epoch_millis(value, value, field_name)

    if isinstance(value, str):
        text = value.strip()
        if EPOCH_MILLIS_PATTERN.match(text):
            return _from_epoch_millis(float(text), value, field_name)
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as e:
            raise InvalidDate(value, field_name=field_name, cause=e) from e
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

    raise InvalidDate(value, field_name=field_name)


def _from_epoch_millis(millis: float, value: Any, field_name: str) -> datetime:
    # NaN, infinities and values past datetime.max
    try:
        return EPOCH + timedelta(milliseconds=millis)
    except (OverflowError, ValueError) as e:
        raise InvalidDate(value, field_name=field_name, cause=e) from e
