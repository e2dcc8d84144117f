"""Conversions shared by the document repositories."""

from datetime import datetime, timezone
from typing import Any, Optional


def to_iso(moment: Optional[datetime]) -> Optional[str]:
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.isoformat()


def from_iso(value: Any) -> Optional[datetime]:
    """
    Parse a stored timestamp.

    Accepts ISO strings and epoch seconds; naive values are taken as UTC.
    Unparseable values become None rather than failing the whole read.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, (int, float)):
        moment = datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        try:
            moment = datetime.fromisoformat(str(value))
        except ValueError:
            return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment
