class DormaError(Exception):
    """Base class for every failure raised by dormafetch."""


class ConfigIOError(DormaError, OSError):
    """Config directory, mapping file or terminal could not be read or written."""


class AuthenticationError(DormaError):
    """Login was rejected, failed in transport, or returned no session cookie."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class FetchError(DormaError):
    """The bookings page could not be retrieved."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class MalformedDocumentError(DormaError):
    """The bookings page does not look like the table we know how to read."""


class EndOfInputError(ConfigIOError):
    """Input ended before a full line was read. ``partial`` holds what arrived."""

    def __init__(self, message, partial=""):
        super().__init__(message)
        self.partial = partial
