"""One-shot local HTTP server receiving the OAuth redirect.

Used by the ``login`` CLI command when the redirect URI points at localhost.
The server only captures the query parameters; state verification and the
code exchange happen in :class:`~tiktok_login_kit.oauth.Authorizer`.
"""

import time
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, HTTPServer
from urllib.parse import parse_qs, urlparse

from tiktok_login_kit.errors import TikTokError
from tiktok_login_kit.logging import get_logger

logger = get_logger(__name__)

SUCCESS_PAGE = (
    b"<html><body><h1>TikTok Authorization Successful!</h1>"
    b"<p>You can close this window and return to the terminal.</p></body></html>"
)
FAILURE_PAGE = (
    b"<html><body><h1>TikTok Authorization Failed</h1>"
    b"<p>You can close this window.</p></body></html>"
)


@dataclass
class CallbackResult:
    """Query parameters captured from the redirect."""

    params: dict[str, str] = field(default_factory=dict)
    error: str = ""

    @property
    def code(self) -> str:
        return self.params.get("code", "")

    @property
    def state(self) -> str:
        return self.params.get("state", "")


def callback_address(redirect_uri: str) -> tuple[str, int, str]:
    """Host, port and path to listen on for ``redirect_uri``."""
    parsed = urlparse(redirect_uri)
    port = parsed.port or (443 if parsed.scheme == "https" else 80)
    return parsed.hostname or "localhost", port, parsed.path or "/"


def wait_for_callback(redirect_uri: str, timeout: float = 300) -> CallbackResult:
    """Serve requests on the redirect URI until the callback arrives.

    Args:
        redirect_uri: The app's registered redirect URI (must be local).
        timeout: Seconds to wait for the callback in total.

    Returns:
        The captured callback parameters.

    Raises:
        TikTokError: If the user denied access or nothing arrived in time.
    """
    host, port, path = callback_address(redirect_uri)
    result = CallbackResult()

    class CallbackHandler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            parsed = urlparse(self.path)

            # Browsers also ask for /favicon.ico
            if parsed.path.rstrip("/") != path.rstrip("/"):
                self.send_response(404)
                self.end_headers()
                return

            params = {k: v[0] for k, v in parse_qs(parsed.query).items() if v}
            result.params = params

            if "error" in params:
                result.error = params.get("error_description") or params["error"]
                self._reply(400, FAILURE_PAGE)
                return

            self._reply(200, SUCCESS_PAGE)

        def _reply(self, status: int, body: bytes) -> None:
            self.send_response(status)
            self.send_header("Content-type", "text/html")
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format: str, *args: object) -> None:
            # Suppress HTTP server logs
            pass

    server = HTTPServer((host, port), CallbackHandler)
    deadline = time.monotonic() + timeout
    logger.info("tiktok_callback_server_listening", host=host, port=port, path=path)

    try:
        # Stray requests (favicon) are answered with 404 and ignored
        while not result.params:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            server.timeout = remaining
            server.handle_request()
    finally:
        server.server_close()

    if result.error:
        raise TikTokError(f"Authorization failed: {result.error}")
    if not result.code:
        raise TikTokError("No authorization code received")
    return result
