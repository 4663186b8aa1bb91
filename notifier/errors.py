"""Error taxonomy for the reminder notifier.

Each error is caught at the boundary of the operation that produced it.
Only credential problems at startup are allowed to stop the process.
"""


class NotifierError(Exception):
    """Base class for all notifier errors."""


class CredentialLoadError(NotifierError):
    """The client secret or token file is missing or malformed."""


class AuthExchangeError(NotifierError):
    """The authorization code could not be obtained or exchanged for a token."""


class FetchError(NotifierError):
    """The Calendar API call failed."""


class AnnounceError(NotifierError):
    """The OS speech command could not be launched."""
