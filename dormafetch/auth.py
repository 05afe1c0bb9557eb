from requests.auth import HTTPBasicAuth
from requests.cookies import extract_cookies_to_jar
from requests_ntlm import HttpNtlmAuth


def _offers_ntlm(response):
    offered = response.headers.get("www-authenticate", "").lower()
    return "ntlm" in offered or "negotiate" in offered


class NegotiateAuth(HttpNtlmAuth):
    """NTLM handshake with a Basic fallback.

    Requests go out anonymously first. A 401 offering NTLM or Negotiate is
    answered with the type 1/2/3 handshake by requests_ntlm; a 401 offering
    anything else is resent once with Basic credentials. If that Basic retry
    is itself answered with an NTLM challenge, the handshake follows.

        session.auth = NegotiateAuth("jdoe", "secret")
    """

    def __init__(self, username, password, send_cbt=True):
        super().__init__(username, password, send_cbt=send_cbt)
        self._basic = HTTPBasicAuth(username, password)

    def response_hook(self, r, **kwargs):
        if r.status_code == 401 and not _offers_ntlm(r):
            r = self._retry_with_basic(r, **kwargs)
            if r.status_code == 401 and _offers_ntlm(r):
                # requests_ntlm skips requests that already carry Authorization
                r.request.headers.pop("Authorization", None)
        return super().response_hook(r, **kwargs)

    def _retry_with_basic(self, response, **kwargs):
        # Drain the 401 so the connection can be reused
        response.content
        response.close()

        request = response.request.copy()
        extract_cookies_to_jar(request._cookies, response.request, response.raw)
        request.prepare_cookies(request._cookies)
        self._basic(request)

        retried = response.connection.send(request, **kwargs)
        retried.history.append(response)
        retried.request = request
        return retried
