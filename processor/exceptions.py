"""Exceptions raised by the events sync."""


class SyncError(Exception):
    """Base class for sync failures."""


class FetchError(SyncError):
    """A page could not be fetched over HTTP."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url


class ParseError(SyncError):
    """Date or time text was present but could not be understood."""


class RenderError(SyncError):
    """The headless browser failed to render or evaluate a page."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url


class ListingResolutionError(SyncError):
    """The items listing could not be resolved into item URLs."""


class EmptyResultError(SyncError):
    """Refusing to replace the events document with zero events."""


class AuthError(SyncError):
    """Webhook request failed authentication."""


class DispatchError(SyncError):
    """A re-run of the sync could not be requested."""
