from dormafetch.client import SessionClient, fetch_entries
from dormafetch.errors import (
    AuthenticationError,
    ConfigIOError,
    DormaError,
    FetchError,
    MalformedDocumentError,
)
from dormafetch.extract import Entry, EntryType, parse_entries
from dormafetch.store import Credential, LocalStore

__version__ = "0.1.0"
