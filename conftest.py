"""Shared fixtures: a local stand-in for the Dorma portal.

The portal runs on 127.0.0.1 over plain HTTP and records every request it
receives so tests can check cookies and auth headers.
"""

import base64
import http.server
import socket
import threading

import pytest

SESSION_ID = "k2x0ftl3zq1abc"

PAGE = """
<table>
<tr>
  <td class="td-tabelle">&nbsp;01.03.2023</td>
  <td class="td-tabelle"> 08:15 </td>
  <td class="td-tabelle">Kommen</td>
</tr>
<tr>
  <td class="td-tabelle">&nbsp;</td>
  <td class="td-tabelle">17:00</td>
  <td class="td-tabelle"> Gehen </td>
</tr>
</table>
"""


def find_free_port():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class FakePortal:
    """Serves login, bookings and logout the way the real portal does."""

    def __init__(self):
        self.requests = []
        self.login_status = 200
        self.send_cookie = True
        self.entries_status = 200
        self.logout_status = 200
        self.page = PAGE
        self.basic_user = None  # "user:pass" to demand Basic auth
        self.ntlm_required = False  # answer 401 NTLM without ever sending a challenge
        self.port = find_free_port()
        self._server = None

    @property
    def host(self):
        return f"127.0.0.1:{self.port}"

    def paths(self):
        return [r["path"] for r in self.requests]

    def start(self):
        portal = self

        class _Handler(http.server.BaseHTTPRequestHandler):
            def log_message(self, *a): pass

            def do_GET(self):
                auth = self.headers.get("Authorization", "")
                portal.requests.append({
                    "path": self.path,
                    "auth": auth,
                    "cookie": self.headers.get("Cookie", ""),
                })

                basic_challenge = {"WWW-Authenticate": 'Basic realm="dorma"'}
                if portal.basic_user is not None and not auth:
                    self._reply(401, b"", basic_challenge)
                    return
                if portal.ntlm_required:
                    self._reply(401, b"", {"WWW-Authenticate": "NTLM"})
                    return
                if portal.basic_user is not None:
                    expected = "Basic " + base64.b64encode(portal.basic_user.encode()).decode()
                    if auth != expected:
                        self._reply(401, b"", basic_challenge)
                        return

                if self.path == "/scripts/login.aspx":
                    headers = {}
                    if portal.send_cookie:
                        headers["Set-Cookie"] = f"ASP.NET_SessionId={SESSION_ID}; path=/; HttpOnly"
                    self._reply(portal.login_status, b"<html>login</html>", headers)
                elif self.path == "/scripts/buchungen/buchungsdata2.aspx?mode=0":
                    self._reply(portal.entries_status, portal.page.encode("utf-8"),
                                {"Content-Type": "text/html; charset=utf-8"})
                elif self.path == "/scripts/login.aspx?sessiontimedout=2":
                    self._reply(portal.logout_status, b"<html>bye</html>")
                else:
                    self._reply(404, b"")

            def _reply(self, status, body, headers=None):
                self.send_response(status)
                for k, v in (headers or {}).items():
                    self.send_header(k, v)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

        self._server = http.server.HTTPServer(("127.0.0.1", self.port), _Handler)
        threading.Thread(target=self._server.serve_forever, daemon=True).start()

    def stop(self):
        self._server.shutdown()
        self._server.server_close()


@pytest.fixture
def portal():
    p = FakePortal()
    p.start()
    yield p
    p.stop()


@pytest.fixture
def config_dir(tmp_path):
    return tmp_path / "dorma"
