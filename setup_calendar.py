"""Google Calendar OAuth Setup.

Run this once to authenticate with Google Calendar and save a token.
Opens your browser for the OAuth consent flow, waits for the redirect on
the local callback port, then saves token.json for future runs of the
notifier. Any existing token is replaced.

Usage:
    python setup_calendar.py
"""

import logging
import sys

from config.settings import load_settings
from notifier.calendar.auth import obtain_credentials
from notifier.errors import AuthExchangeError, CredentialLoadError


def main() -> None:
    """Run the OAuth flow and save the token."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    try:
        settings = load_settings()
    except ValueError as e:
        print(f"ERROR: invalid configuration: {e}")
        sys.exit(1)

    print("Starting Google Calendar authentication...")
    print(f"Using credentials from: {settings.google_credentials_path}")
    print()

    try:
        obtain_credentials(
            settings.google_credentials_path,
            settings.google_token_path,
            callback_port=settings.oauth_callback_port,
            timeout=settings.oauth_timeout_seconds,
            force=True,
        )
    except (CredentialLoadError, AuthExchangeError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print()
    print(f"Token saved to: {settings.google_token_path}")
    print("You can now run: python main.py")


if __name__ == "__main__":
    main()
