"""Splitwise OAuth 2.0 authorization-code flow over a loopback callback.

``SplitwiseAuth.serve()`` starts a small HTTP server on localhost and opens it
in the browser. The server redirects to Splitwise's authorize page, Splitwise
redirects back to ``/callback`` with a code, and the code is exchanged for a
token. Ctrl+C while waiting aborts the flow.
"""

import logging
import signal
import threading
import webbrowser
from collections.abc import Callable
from concurrent.futures import Future, wait
from enum import Enum
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import parse_qs, urlencode, urlsplit

import httpx

from .models import AuthFailure, AuthResult, AuthSuccess, SplitwiseApp

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.2


class AuthState(str, Enum):
    """Progress of one authorization attempt."""

    AWAITING_REDIRECT = "awaiting_redirect"
    AWAITING_CALLBACK = "awaiting_callback"
    DONE = "done"


class _CallbackServer(ThreadingHTTPServer):
    """HTTP server that knows which flow it serves.

    Each request gets its own daemon thread, and closing the server does not
    wait for them, so an idle browser connection cannot hold up shutdown.
    """

    daemon_threads = True
    block_on_close = False

    def __init__(self, address: tuple[str, int], flow: "SplitwiseAuth"):
        self.flow = flow
        super().__init__(address, _CallbackHandler)


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _CallbackServer

    def do_GET(self):
        flow = self.server.flow
        url = urlsplit(self.path)

        if url.path == "/":
            if flow.state is AuthState.AWAITING_REDIRECT:
                flow.state = AuthState.AWAITING_CALLBACK
            self.send_response(307)
            self.send_header("Location", flow.authorize_url())
            self.send_header("Content-Length", "0")
            self.end_headers()
            return

        if url.path == "/callback":
            status, body, result = flow.handle_callback(url.query)
            self._write(status, body)
            flow.resolve(result)
            return

        self._write(404, "Not found")

    def _write(self, status: int, body: str):
        data = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format, *args):
        logger.debug(f"{self.address_string()} - {format % args}")


class SplitwiseAuth:
    """Obtain a Splitwise access token through the browser."""

    AUTHORIZE_URL = "https://secure.splitwise.com/oauth/authorize"
    TOKEN_URL = "https://secure.splitwise.com/oauth/token"
    PORT = 15131

    def __init__(
        self,
        app: SplitwiseApp,
        port: int = PORT,
        open_browser: Callable[[str], bool] = webbrowser.open,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the flow.

        Args:
            app: Application credentials
            port: Loopback port; must match the redirect URI registered with
                Splitwise. 0 picks a free port (useful in tests).
            open_browser: Called with the local URL once the server is up
            transport: Optional httpx transport for the token exchange
        """
        self.app = app
        self.port = port
        self.open_browser = open_browser
        self.transport = transport
        self.state = AuthState.AWAITING_REDIRECT
        self._lock = threading.Lock()
        self._result: Future[AuthResult] = Future()
        self._interrupted = threading.Event()
        self._server: _CallbackServer | None = None

    @property
    def local_url(self) -> str:
        return f"http://localhost:{self.port}"

    @property
    def callback_url(self) -> str:
        return f"{self.local_url}/callback"

    def authorize_url(self) -> str:
        """Splitwise authorize page, redirecting back to our callback."""
        query = urlencode(
            {
                "client_id": self.app.key,
                "response_type": "code",
                "redirect_uri": self.callback_url,
            }
        )
        return f"{self.AUTHORIZE_URL}?{query}"

    def exchange_code(self, code: str) -> dict[str, Any]:
        """Trade an authorization code for a token payload."""
        with httpx.Client(timeout=None, transport=self.transport) as client:
            response = client.post(
                self.TOKEN_URL,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.callback_url,
                    "client_id": self.app.key,
                    "client_secret": self.app.secret,
                },
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            token: dict[str, Any] = response.json()
            return token

    def handle_callback(self, query: str) -> tuple[int, str, AuthResult]:
        """
        Process the redirect back from Splitwise.

        Returns:
            Tuple of (HTTP status, page body, flow result)
        """
        params = parse_qs(query)

        if "error" in params:
            reason = f"Authorization denied: {params['error'][0]}"
            return 400, reason, AuthFailure(reason=reason)

        codes = params.get("code")
        if not codes:
            reason = "No authorization code in callback"
            return 400, reason, AuthFailure(reason=reason)

        try:
            token = self.exchange_code(codes[0])
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Token exchange failed: {e}")
            reason = f"Token exchange failed: {e}"
            return 502, reason, AuthFailure(reason=reason)

        if not isinstance(token, dict) or "access_token" not in token:
            reason = "Token exchange returned no access_token"
            return 502, reason, AuthFailure(reason=reason)

        return 200, "OK! Back to the terminal", AuthSuccess(token=token)

    def resolve(self, result: AuthResult) -> bool:
        """
        Set the outcome of the flow.

        Only the first call has any effect. Returns whether this call did.
        """
        with self._lock:
            if self._result.done():
                logger.debug(f"Ignoring late auth result: {result!r}")
                return False
            self.state = AuthState.DONE
            self._result.set_result(result)
            return True

    def abort(self) -> bool:
        """Cancel the flow while waiting for the browser."""
        return self.resolve(AuthFailure(reason="Aborted"))

    def _on_interrupt(self, signum, frame):
        self._interrupted.set()

    def serve(self) -> AuthResult:
        """
        Run the flow and block until it succeeds or is aborted.

        There is no timeout; Ctrl+C (SIGINT) aborts. The SIGINT handler that was
        installed before the call is restored afterwards.

        Returns:
            AuthSuccess with the token payload, or AuthFailure with the reason
        """
        self.state = AuthState.AWAITING_REDIRECT
        self._result = Future()
        self._interrupted.clear()
        self._server = _CallbackServer(("127.0.0.1", self.port), self)
        self.port = self._server.server_address[1]

        # Signal handlers can only be installed from the main thread
        install_handler = threading.current_thread() is threading.main_thread()
        previous_handler = None
        if install_handler:
            previous_handler = signal.signal(signal.SIGINT, self._on_interrupt)

        thread = threading.Thread(
            target=self._server.serve_forever,
            name="splitwise-oauth-callback",
            daemon=True,
        )
        try:
            thread.start()
            logger.info(f"Opening {self.local_url}")
            self._launch_browser()
            # Poll so the main thread gets to run the SIGINT handler
            while not self._result.done():
                if self._interrupted.is_set():
                    self.abort()
                    break
                wait([self._result], timeout=POLL_INTERVAL)
            return self._result.result()
        finally:
            self._server.shutdown()
            self._server.server_close()
            thread.join()
            self._server = None
            if install_handler:
                signal.signal(
                    signal.SIGINT,
                    previous_handler if previous_handler is not None else signal.SIG_DFL,
                )

    def _launch_browser(self):
        try:
            opened = self.open_browser(self.local_url)
        except webbrowser.Error as e:
            logger.warning(f"Could not open a browser: {e}")
            opened = False
        if not opened:
            logger.warning(f"Open {self.local_url} in your browser to authorize")
