"""Google OAuth credential provider.

Loads the saved token when there is one, refreshes it when it has expired,
and otherwise runs the interactive authorization-code flow: the consent page
is opened in a browser and a short-lived loopback server on localhost
captures the redirect carrying the code.
"""

import json
import logging
import time
import webbrowser
from pathlib import Path
from typing import Any, Callable
from urllib.parse import urlparse

from flask import Flask, request
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error
from werkzeug.serving import make_server

from notifier.errors import AuthExchangeError, CredentialLoadError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]

CALLBACK_PATH = "/oauth2callback"
AUTH_SUCCESS_MESSAGE = "Authentication successful! You can close this tab."

BrowserOpener = Callable[[str], Any]


def open_browser(url: str) -> None:
    """Open a URL in the default browser, ignoring failures."""
    try:
        webbrowser.open(url)
    except webbrowser.Error as e:
        logger.debug("Could not open browser: %s", e)


def load_client_config(credentials_path: str) -> dict[str, Any]:
    """Read the OAuth client secret file.

    Args:
        credentials_path: Path to credentials.json from Google Cloud Console.

    Returns:
        The parsed client config, with either an "installed" or "web" section.

    Raises:
        CredentialLoadError: If the file is missing, not JSON, or incomplete.
    """
    path = Path(credentials_path)
    try:
        config = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise CredentialLoadError(
            f"Client secret file not found at {credentials_path}. "
            "Download credentials.json from Google Cloud Console."
        ) from e
    except (OSError, ValueError) as e:
        raise CredentialLoadError(f"Error loading client secret file {credentials_path}: {e}") from e

    section = (config.get("installed") or config.get("web")) if isinstance(config, dict) else None
    if not isinstance(section, dict):
        raise CredentialLoadError(
            f"{credentials_path} has no 'installed' or 'web' client section"
        )

    missing = [key for key in ("client_id", "client_secret", "redirect_uris") if not section.get(key)]
    if missing:
        raise CredentialLoadError(f"{credentials_path} is missing {', '.join(missing)}")

    return config


def resolve_redirect_uri(client_config: dict[str, Any], default_port: int) -> str:
    """Pick the loopback redirect URI for the authorization flow.

    The first configured redirect URI is used. Desktop client files usually
    list a bare "http://localhost", in which case the default port and
    the /oauth2callback path are filled in.
    """
    section = client_config.get("installed") or client_config.get("web")
    parsed = urlparse(section["redirect_uris"][0])

    host = parsed.hostname or "localhost"
    port = parsed.port or default_port
    path = parsed.path if parsed.path not in ("", "/") else CALLBACK_PATH
    return f"{parsed.scheme or 'http'}://{host}:{port}{path}"


def load_saved_token(token_path: str) -> Credentials | None:
    """Load previously stored credentials.

    A missing token is normal on first run. A corrupt one is logged and
    treated as missing so the caller can re-authorize.
    """
    token_file = Path(token_path)
    if not token_file.exists():
        return None

    try:
        return Credentials.from_authorized_user_file(str(token_file), SCOPES)
    except (OSError, ValueError) as e:
        logger.error("Failed to load token from %s: %s", token_path, e)
        return None


def save_token(creds: Credentials, token_path: str) -> None:
    """Store credentials to disk for later runs. Failures are only logged."""
    try:
        Path(token_path).write_text(creds.to_json(), encoding="utf-8")
        logger.info("Token stored to %s", token_path)
    except OSError as e:
        logger.error("Error saving token: %s", e)


def create_callback_app(result: dict[str, str], path: str = CALLBACK_PATH) -> Flask:
    """Build the one-route Flask app that receives the OAuth redirect.

    The captured "code" (or "error") query parameter is written into
    the result dict.
    """
    app = Flask(__name__)

    @app.route(path)
    def oauth2callback():
        error = request.args.get("error")
        if error:
            result["error"] = error
            return f"Authentication failed: {error}. You can close this tab.", 400

        code = request.args.get("code")
        if not code:
            return "Missing authorization code.", 400

        result["code"] = code
        return AUTH_SUCCESS_MESSAGE

    return app


def wait_for_authorization_code(redirect_uri: str, timeout: float = 300.0) -> str:
    """Listen on the loopback redirect URI until the code arrives.

    The server handles one request at a time and is shut down as soon as a
    code or an error has been captured.

    Raises:
        AuthExchangeError: If consent was denied or the wait timed out.
    """
    parsed = urlparse(redirect_uri)
    result: dict[str, str] = {}
    app = create_callback_app(result, parsed.path or CALLBACK_PATH)

    server = make_server(parsed.hostname or "localhost", parsed.port, app)
    server.timeout = 1.0
    logger.info("Listening on port %d for OAuth2 callback", parsed.port)

    deadline = time.monotonic() + timeout
    try:
        while not result and time.monotonic() < deadline:
            server.handle_request()
    finally:
        server.server_close()

    if "error" in result:
        raise AuthExchangeError(f"Authorization was denied: {result['error']}")
    if "code" not in result:
        raise AuthExchangeError(f"No authorization code received within {timeout:.0f}s")
    return result["code"]


def authorize_interactively(
    client_config: dict[str, Any],
    callback_port: int = 3000,
    browser_opener: BrowserOpener = open_browser,
    timeout: float = 300.0,
) -> Credentials:
    """Run the authorization-code flow against a loopback redirect.

    Raises:
        AuthExchangeError: If no code was received or the token exchange failed.
    """
    redirect_uri = resolve_redirect_uri(client_config, callback_port)
    flow = Flow.from_client_config(client_config, scopes=SCOPES, redirect_uri=redirect_uri)
    auth_url, _ = flow.authorization_url(access_type="offline", prompt="consent")

    print(f"Authorize this app by visiting this URL: {auth_url}")
    browser_opener(auth_url)

    code = wait_for_authorization_code(redirect_uri, timeout)

    try:
        flow.fetch_token(code=code)
    except (OAuth2Error, GoogleAuthError, OSError, ValueError) as e:
        raise AuthExchangeError(f"Error retrieving access token: {e}") from e

    logger.info("Successfully authenticated with Google Calendar")
    return flow.credentials


def obtain_credentials(
    credentials_path: str,
    token_path: str,
    browser_opener: BrowserOpener = open_browser,
    callback_port: int = 3000,
    timeout: float = 300.0,
    force: bool = False,
) -> Credentials:
    """Load, refresh, or interactively obtain Google OAuth credentials.

    Args:
        credentials_path: Path to the OAuth client credentials JSON file.
        token_path: Path to the saved token JSON file.
        browser_opener: Called with the consent URL on first run.
        callback_port: Loopback port used when the redirect URI has none.
        timeout: Seconds to wait for the browser redirect.
        force: Ignore any saved token and re-authorize.

    Returns:
        Valid Credentials object.

    Raises:
        CredentialLoadError: If the client secret file is missing or malformed.
        AuthExchangeError: If interactive authorization fails.
    """
    client_config = load_client_config(credentials_path)

    creds = None if force else load_saved_token(token_path)

    if creds and creds.expired and creds.refresh_token:
        logger.info("Refreshing expired token...")
        try:
            creds.refresh(Request())
            save_token(creds, token_path)
        except (GoogleAuthError, OSError) as e:
            logger.error("Failed to refresh credentials: %s", e)
            creds = None

    if creds and creds.valid:
        return creds

    creds = authorize_interactively(client_config, callback_port, browser_opener, timeout)
    save_token(creds, token_path)
    return creds
