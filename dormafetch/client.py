"""HTTP session against the Dorma web portal.

One fetch is one short-lived portal session:

    login   GET /scripts/login.aspx                       -> ASP.NET_SessionId
    fetch   GET /scripts/buchungen/buchungsdata2.aspx?mode=0
    logout  GET /scripts/login.aspx?sessiontimedout=2     (best effort)

The portal sits behind IIS with NTLM enabled, so every request carries
NegotiateAuth in addition to the session cookie.
"""

import logging
from contextlib import contextmanager

import requests
from spnego.exceptions import SpnegoError

from dormafetch.auth import NegotiateAuth
from dormafetch.errors import AuthenticationError, FetchError
from dormafetch.extract import parse_entries

log = logging.getLogger(__name__)

SESSION_COOKIE = "ASP.NET_SessionId"

LOGIN_PATH = "/scripts/login.aspx"
LOGOUT_PATH = "/scripts/login.aspx?sessiontimedout=2"
ENTRIES_PATH = "/scripts/buchungen/buchungsdata2.aspx?mode=0"

UNAUTHENTICATED = "unauthenticated"
AUTHENTICATED = "authenticated"
TERMINATED = "terminated"

# requests_ntlm raises PermissionError when the server never sends a challenge
_TRANSPORT_ERRORS = (requests.RequestException, PermissionError, SpnegoError)


class SessionClient:
    """A single login → fetch → logout sequence against one host.

    ``session`` may be any requests.Session; one is created when omitted.
    """

    def __init__(self, host, user, password, scheme="https", verify=True, session=None):
        self.host = host
        self.scheme = scheme
        self.verify = verify
        self.session = session or requests.Session()
        self.session.auth = NegotiateAuth(user, password)
        self.session_id = None
        self.state = UNAUTHENTICATED

    def url(self, path):
        return f"{self.scheme}://{self.host}{path}"

    def _get(self, path, with_cookie=True):
        cookies = {SESSION_COOKIE: self.session_id} if with_cookie else None
        return self.session.get(self.url(path), cookies=cookies, verify=self.verify)

    def login(self):
        """Authenticate and return the session cookie value."""
        if self.state != UNAUTHENTICATED:
            raise RuntimeError(f"Cannot log in: session is {self.state}")

        log.debug("Logging in to %s", self.host)
        try:
            response = self._get(LOGIN_PATH, with_cookie=False)
        except _TRANSPORT_ERRORS as e:
            raise AuthenticationError(f"login failed: {e}") from e

        if response.status_code != 200:
            raise AuthenticationError(
                f"login failed: server returned code {response.status_code}",
                status_code=response.status_code,
            )

        session_id = response.cookies.get(SESSION_COOKIE)
        if not session_id:
            raise AuthenticationError(f"login failed: missing Cookie {SESSION_COOKIE}")

        self.session_id = session_id
        self.state = AUTHENTICATED
        return session_id

    def fetch_page(self):
        """Return the raw HTML of the current bookings page."""
        if self.state != AUTHENTICATED:
            raise RuntimeError(f"Cannot fetch entries: session is {self.state}")

        log.debug("Fetching bookings from %s", self.host)
        try:
            response = self._get(ENTRIES_PATH)
        except _TRANSPORT_ERRORS as e:
            raise FetchError(f"failed to retrieve entries: {e}") from e

        if response.status_code != 200:
            raise FetchError(
                f"failed to retrieve entries: server returned code {response.status_code}",
                status_code=response.status_code,
            )
        return response.text

    def logout(self):
        """End the portal session. Failures are logged, never raised."""
        if self.state != AUTHENTICATED:
            return
        self.state = TERMINATED

        try:
            response = self._get(LOGOUT_PATH)
        except Exception as e:
            log.warning("Logout from %s failed: %s", self.host, e)
            return
        if response.status_code != 200:
            log.warning("Logout from %s returned code %d", self.host, response.status_code)

    @contextmanager
    def session_scope(self):
        """Log in, yield the session id, and always log out afterwards."""
        session_id = self.login()
        try:
            yield session_id
        finally:
            self.logout()


def fetch_entries(host, user, password, scheme="https", verify=True, session=None):
    """Return today's entries listed under "Aktuelle Buchungen" on host."""
    client = SessionClient(host, user, password, scheme=scheme, verify=verify, session=session)
    with client.session_scope():
        html = client.fetch_page()
    return parse_entries(html)
