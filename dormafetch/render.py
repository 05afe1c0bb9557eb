import json
from datetime import timedelta

from rich.table import Table

from dormafetch.extract import EntryType

_TYPE_STYLE = {
    EntryType.COME: "[green]come[/green]",
    EntryType.LEAVE: "[red]leave[/red]",
}


def entries_table(entries, title="Aktuelle Buchungen"):
    table = Table(title=title)
    table.add_column("Date", style="dim")
    table.add_column("Time", style="bold cyan")
    table.add_column("Type")

    for entry in entries:
        table.add_row(
            entry.time.strftime("%d.%m.%Y"),
            entry.time.strftime("%H:%M"),
            _TYPE_STYLE[entry.type],
        )
    return table


def entries_json(entries):
    return json.dumps([e.to_dict() for e in entries], indent=2)


def worked_time(entries, now):
    """Sum come→leave intervals. An open come counts until now.

    A leave with no come before it is ignored, as is a second come while
    already present.
    """
    total = timedelta()
    came_at = None
    for entry in entries:
        if entry.type == EntryType.COME:
            if came_at is None:
                came_at = entry.time
        elif came_at is not None:
            total += entry.time - came_at
            came_at = None

    if came_at is not None and now > came_at:
        total += now - came_at
    return total


def format_duration(delta):
    minutes = int(delta.total_seconds()) // 60
    return f"{minutes // 60}:{minutes % 60:02d}h"
