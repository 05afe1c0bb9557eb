"""Bookings table extraction.

The "Aktuelle Buchungen" page renders one row per booking as three
``td-tabelle`` cells: date, time and a label such as "Kommen" or "Gehen".
Consecutive bookings on the same day leave the date cell empty, so the last
complete date is carried forward.

The page is matched with a fixed regular expression rather than an HTML
parser; any markup change on the portal means updating ROW_PATTERN.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from dormafetch.errors import MalformedDocumentError

ROW_PATTERN = re.compile(
    r'<td class="td-tabelle">\s*(&nbsp;)?(\d*)\.?(\d*)\.?(\d*)\s*</td>\s*'
    r'<td class="td-tabelle">\s*(\d+):(\d+)\s*</td>\s*'
    r'<td class="td-tabelle">\s*([^<]+?)\s*</td>',
    re.ASCII,
)

_ROW_GROUPS = 7

COME_MARKER = "kommen"
LEAVE_MARKER = "gehen"


class EntryType(str, Enum):
    COME = "come"
    LEAVE = "leave"


@dataclass(frozen=True)
class Entry:
    time: datetime
    type: EntryType

    def to_dict(self):
        return {"time": self.time.isoformat(), "type": self.type.value}


def parse_entry_type(label):
    lowered = label.lower()
    if COME_MARKER in lowered:
        return EntryType.COME
    if LEAVE_MARKER in lowered:
        return EntryType.LEAVE
    raise MalformedDocumentError(f'cannot parse entry type from "{label}"')


def _local_time(date, hour, minute):
    year, month, day = date
    try:
        naive = datetime(year, month, day, hour, minute)
    except ValueError as e:
        raise MalformedDocumentError(
            f"invalid booking time {day:02d}.{month:02d}.{year} {hour:02d}:{minute:02d}: {e}"
        ) from e
    # Attach the process' local time zone
    return naive.astimezone()


def parse_entries(html):
    """Return the bookings found in html, in document order.

    Raises MalformedDocumentError if the first row has no date or a label is
    neither a come nor a leave booking. Nothing is returned in that case.
    """
    entries = []
    current_date = None

    for match in ROW_PATTERN.finditer(html):
        groups = match.groups()
        if len(groups) != _ROW_GROUPS:
            continue
        _, day, month, year, hour, minute, label = groups

        # Only a complete date replaces the carried one
        if day and month and year:
            current_date = (int(year), int(month), int(day))
        if current_date is None:
            raise MalformedDocumentError("missing date for first entry")

        entry_type = parse_entry_type(label)
        entries.append(Entry(time=_local_time(current_date, int(hour), int(minute)), type=entry_type))

    return entries
