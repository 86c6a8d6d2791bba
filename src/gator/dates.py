"""Publish-date resolution for feed items.

Feeds in the wild disagree on how to write a date. ``resolve`` tries a fixed,
ordered list of layouts and returns the first match. A string that matches
none of them resolves to ``None`` rather than raising, so a bad date never
keeps an item out of the database.
"""

import re
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Callable

# Zone abbreviations understood by the MM/DD/YYYY layout. Anything else is
# read as UTC.
ZONE_OFFSETS = {
    "UTC": 0,
    "GMT": 0,
    "Z": 0,
    "EST": -5,
    "EDT": -4,
    "CST": -6,
    "CDT": -5,
    "MST": -7,
    "MDT": -6,
    "PST": -8,
    "PDT": -7,
}

_US_DATETIME_ZONE = re.compile(
    r"^(\d{2}/\d{2}/\d{4} \d{2}:\d{2}:\d{2}) ([A-Za-z]{1,5})$"
)
_RFC3339 = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$"
)
_RFC1123 = re.compile(
    r"^(?:[A-Za-z]{3}, )?\d{1,2} [A-Za-z]{3} \d{4} \d{2}:\d{2}(?::\d{2})? \S+$"
)


def _strptime_utc(fmt: str, shape: str) -> Callable[[str], datetime]:
    # strptime accepts unpadded fields; the shape pins each field width.
    pattern = re.compile(shape)

    def parse(raw: str) -> datetime:
        if not pattern.match(raw):
            raise ValueError(f"{raw!r} does not match {fmt!r}")
        return datetime.strptime(raw, fmt).replace(tzinfo=timezone.utc)

    return parse


def _parse_us_datetime_zone(raw: str) -> datetime:
    match = _US_DATETIME_ZONE.match(raw)
    if not match:
        raise ValueError(f"not a MM/DD/YYYY HH:MM:SS TZ date: {raw!r}")
    naive = datetime.strptime(match.group(1), "%m/%d/%Y %H:%M:%S")
    hours = ZONE_OFFSETS.get(match.group(2).upper(), 0)
    return naive.replace(tzinfo=timezone(timedelta(hours=hours)))


def _parse_rfc3339(raw: str) -> datetime:
    match = _RFC3339.match(raw)
    if not match:
        raise ValueError(f"not an RFC 3339 date: {raw!r}")
    base, fraction, zone = match.groups()
    micros = (fraction or "0")[:6].ljust(6, "0")
    if zone == "Z":
        zone = "+00:00"
    return datetime.strptime(f"{base}.{micros}{zone}", "%Y-%m-%dT%H:%M:%S.%f%z")


def _parse_rfc1123(raw: str) -> datetime:
    if not _RFC1123.match(raw):
        raise ValueError(f"not an RFC 1123 date: {raw!r}")
    try:
        parsed = parsedate_to_datetime(raw)
    except TypeError as e:
        # Older interpreters signal an unparsable date with TypeError.
        raise ValueError(str(e)) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# Tried in order; the first layout that parses wins.
LAYOUTS: list[tuple[str, Callable[[str], datetime]]] = [
    (
        "YYYY-MM-DD HH:MM:SS",
        _strptime_utc("%Y-%m-%d %H:%M:%S", r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$"),
    ),
    ("YYYY/MM/DD", _strptime_utc("%Y/%m/%d", r"^\d{4}/\d{2}/\d{2}$")),
    ("DD Mon YYYY", _strptime_utc("%d %b %Y", r"^\d{2} [A-Za-z]{3} \d{4}$")),
    ("MM/DD/YYYY HH:MM:SS TZ", _parse_us_datetime_zone),
    ("RFC 3339", _parse_rfc3339),
    ("RFC 1123", _parse_rfc1123),
]


def resolve(raw: str | None) -> datetime | None:
    """Resolve a raw publish-date string to an aware datetime.

    Args:
        raw: The date string exactly as it appeared in the feed.

    Returns:
        The parsed datetime, or None when no known layout matches.
    """
    if not raw:
        return None
    raw = raw.strip()
    for _name, parse in LAYOUTS:
        try:
            return parse(raw)
        except ValueError:
            continue
    return None
