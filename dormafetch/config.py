import json
import os
from pathlib import Path

from dormafetch.errors import ConfigIOError

CONFIG_DIR_ENV = "DORMA_CONFIG_DIR"
SETTINGS_FILE = "config.json"

DEFAULT_SETTINGS = {
    "app": "default",
    "verify_tls": True,
    "scheme": "https",
}


def default_config_dir():
    """Return $DORMA_CONFIG_DIR, or ~/.dorma when unset."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".dorma"


def _read_settings_file(config_dir):
    path = Path(config_dir) / SETTINGS_FILE
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as e:
        raise ConfigIOError(f"Cannot read {path}: {e}") from e
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigIOError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigIOError(f"Invalid settings in {path}: expected a JSON object")
    return raw


def load_settings(config_dir):
    # Merge order: defaults → config.json
    return {**DEFAULT_SETTINGS, **_read_settings_file(config_dir)}


def save_settings(config_dir, updates):
    """Merge updates into config.json. Returns the merged settings."""
    existing = _read_settings_file(config_dir)
    existing.update(updates)
    path = Path(config_dir) / SETTINGS_FILE
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(existing, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        raise ConfigIOError(f"Cannot write {path}: {e}") from e
    return {**DEFAULT_SETTINGS, **existing}
