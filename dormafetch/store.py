"""Local store for portal hosts and login credentials.

Two JSON files live in the config directory:

    app-hosts          {"<app id>": "<host>", ...}
    host-credentials   {"<host>": {"user": "...", "pass": "..."}, ...}

Missing values are asked for on the terminal and the whole file is written
back. Passwords are kept in clear text and files are created with mode 0777
(before umask), the same way the portal tooling always stored them.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path

import click

from dormafetch import prompt
from dormafetch.errors import ConfigIOError, EndOfInputError

HOSTS_FILE = "app-hosts"
CREDENTIALS_FILE = "host-credentials"

_FILE_MODE = 0o777


@dataclass(frozen=True)
class Credential:
    user: str
    password: str

    def to_dict(self):
        return {"user": self.user, "pass": self.password}

    @classmethod
    def from_dict(cls, d):
        """Build from {"user": ..., "pass": ...}. Raises ValueError on any other shape."""
        if not isinstance(d, dict):
            raise ValueError("expected an object with \"user\" and \"pass\"")
        user, password = d.get("user"), d.get("pass")
        if not isinstance(user, str) or not isinstance(password, str):
            raise ValueError("\"user\" and \"pass\" must be strings")
        return cls(user=user, password=password)


def _read_json_object(path):
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        return {}
    except OSError as e:
        raise ConfigIOError(f"Cannot read {path}: {e}") from e

    try:
        obj = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigIOError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(obj, dict):
        raise ConfigIOError(f"Invalid JSON in {path}: expected an object")
    return obj


def _write_json_object(path, obj):
    try:
        path.parent.mkdir(mode=_FILE_MODE, parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, _FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(obj, f)
    except OSError as e:
        raise ConfigIOError(f"Cannot write {path}: {e}") from e


class LocalStore:
    """Host and credential lookup backed by files in ``config_dir``.

    read_line, read_secret and echo default to the real terminal and can be
    replaced for non-interactive use.
    """

    def __init__(self, config_dir, read_line=None, read_secret=None, echo=None):
        self.config_dir = Path(config_dir)
        self._read_line = read_line or prompt.read_line
        self._read_secret = read_secret or prompt.read_secret
        self._echo = echo or click.echo

    @property
    def hosts_file(self):
        return self.config_dir / HOSTS_FILE

    @property
    def credentials_file(self):
        return self.config_dir / CREDENTIALS_FILE

    # ── Hosts ──────────────────────────────────────────────────────────────

    def read_hosts(self):
        hosts = _read_json_object(self.hosts_file)
        for app_id, host in hosts.items():
            if not isinstance(host, str):
                raise ConfigIOError(
                    f"Invalid host for app {app_id!r} in {self.hosts_file}: expected a string"
                )
        return hosts

    def write_hosts(self, hosts):
        _write_json_object(self.hosts_file, dict(hosts))

    def set_host(self, app_id, host):
        hosts = self.read_hosts()
        hosts[app_id] = host
        self.write_hosts(hosts)

    def resolve_host(self, app_id):
        """Return the host configured for app_id, asking for it on a miss."""
        hosts = self.read_hosts()
        if app_id in hosts:
            return hosts[app_id]

        self._echo(f'No Dorma host for app "{app_id}" defined. Please enter host below:')
        self._echo("> ", nl=False)
        try:
            host = self._read_line()
        except EndOfInputError as e:
            raise EndOfInputError(f'No host entered for app "{app_id}": input ended', e.partial) from e

        hosts[app_id] = host
        self.write_hosts(hosts)
        return host

    # ── Credentials ────────────────────────────────────────────────────────

    def read_credentials(self):
        raw = _read_json_object(self.credentials_file)
        credentials = {}
        for host, value in raw.items():
            try:
                credentials[host] = Credential.from_dict(value)
            except ValueError as e:
                raise ConfigIOError(
                    f"Invalid credentials for host {host!r} in {self.credentials_file}: {e}"
                ) from e
        return credentials

    def write_credentials(self, credentials):
        _write_json_object(
            self.credentials_file,
            {host: c.to_dict() for host, c in credentials.items()},
        )

    def forget_credentials(self, host):
        """Drop stored credentials for host. Returns False if there were none."""
        credentials = self.read_credentials()
        if host not in credentials:
            return False
        del credentials[host]
        self.write_credentials(credentials)
        return True

    def resolve_credentials(self, host):
        """Return the Credential stored for host, asking for it on a miss."""
        credentials = self.read_credentials()
        if host in credentials:
            return credentials[host]

        self._echo(f'No credentials for host "{host}" available. Please enter host below:')
        self._echo("User> ", nl=False)
        try:
            user = self._read_line()
        except EndOfInputError as e:
            raise EndOfInputError(f'No user entered for host "{host}": input ended', e.partial) from e
        self._echo("Pass> ", nl=False)
        password = self._read_secret()

        credential = Credential(user=user, password=password)
        credentials[host] = credential
        self.write_credentials(credentials)
        return credential
