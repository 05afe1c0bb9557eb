"""Terminal input for values missing from the local store.

read_line() reads stdin one character at a time. When input ends
before a newline it raises EndOfInputError carrying the partial line, so
callers can tell a closed stdin from an empty answer.
"""

import sys

import click

from dormafetch.errors import ConfigIOError, EndOfInputError


def read_line(stream=None):
    """Read up to (not including) the next newline.

    Raises EndOfInputError with ``partial`` set if input ends first.
    """
    stream = stream or sys.stdin
    chars = []
    while True:
        ch = stream.read(1)
        if not ch:
            raise EndOfInputError("Unexpected end of input", "".join(chars))
        if ch == "\n":
            break
        chars.append(ch)
    return "".join(chars)


def read_secret(prompt=""):
    """Read a line from the terminal without echoing it."""
    if not sys.stdin.isatty():
        raise ConfigIOError("Cannot read password: stdin is not a terminal")
    try:
        return click.prompt(
            prompt, hide_input=True, default="", show_default=False, prompt_suffix=""
        )
    except click.Abort as e:
        raise ConfigIOError("Password input aborted") from e
