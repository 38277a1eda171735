"""Date handling for membership properties.

Dates are stored twice: the literal string as supplied, and its Unix
epoch seconds under '<name>Epoch' so the graph can answer range queries.
"""

import math
import re
from datetime import datetime
from typing import Any

from memberships_rw.errors import InvalidDateError

# RFC 3339 date-time: fraction of any length, offset 'Z' or '+hh:mm'
RFC3339_PATTERN = re.compile(
    r"(?P<date>\d{4}-\d{2}-\d{2})[Tt]"
    r"(?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})"
)


def parse_rfc3339(field: str, value: str) -> int:
    """Parse an RFC 3339 date-time into a Unix timestamp.

    Fractions finer than microseconds are truncated. Surrounding whitespace
    is not accepted.

    Args:
        field: Name of the field being parsed (for the error message)
        value: Date-time string, e.g. "2016-01-01T00:00:00Z"

    Returns:
        Unix timestamp in seconds

    Raises:
        InvalidDateError: If value is not an RFC 3339 date-time with offset
    """
    match = RFC3339_PATTERN.fullmatch(value)
    if not match:
        raise InvalidDateError(field, value)

    offset = match["offset"].upper()
    if offset == "Z":
        offset = "+00:00"
    fraction = (match["fraction"] or "0")[:6].ljust(6, "0")

    try:
        parsed = datetime.fromisoformat(f"{match['date']}T{match['time']}.{fraction}{offset}")
    except ValueError as e:
        raise InvalidDateError(field, value) from e
    return math.floor(parsed.timestamp())


def add_date_to_params(params: dict[str, Any], name: str, value: str | None) -> None:
    """Copy a date into params as both its string and epoch forms.

    Empty values are skipped.
    """
    if not value:
        return
    epoch = parse_rfc3339(name, value)
    params[name] = value
    params[f"{name}Epoch"] = epoch
