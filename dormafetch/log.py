"""Fetch history.

Appends one JSON line per fetch to <config dir>/logs.jsonl with timestamp,
app id, host and result. Credentials are never written here.
"""

import json
from datetime import datetime
from pathlib import Path

from dormafetch.errors import ConfigIOError

LOGS_FILE = "logs.jsonl"


def logs_path(config_dir):
    return Path(config_dir) / LOGS_FILE


def write_log(config_dir, entry):
    """Append a fetch log entry."""
    path = logs_path(config_dir)
    entry["timestamp"] = datetime.now().isoformat()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError as e:
        raise ConfigIOError(f"Cannot write {path}: {e}") from e


def read_logs(config_dir):
    path = logs_path(config_dir)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except OSError as e:
        raise ConfigIOError(f"Cannot read {path}: {e}") from e

    entries = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entries.append(json.loads(line))
        except json.JSONDecodeError:
            continue
    return entries
