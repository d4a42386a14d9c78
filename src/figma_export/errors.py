"""Exceptions raised by the Figma export client."""


class FigmaExportError(Exception):
    """Base class for all export errors."""


class InvalidUrlError(FigmaExportError):
    """The URL is not a recognized Figma file URL."""


class UpstreamApiError(FigmaExportError):
    """The Figma API returned an error field or a non-success status."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class RateLimitExceededError(FigmaExportError):
    """HTTP 429 persisted past the retry budget."""


class TransportError(FigmaExportError):
    """Connection or timeout failures persisted past the retry budget."""


class DownloadError(FigmaExportError):
    """Fetching a render URL failed. Fatal for one node only."""


class CacheIOError(FigmaExportError):
    """Reading or writing a cache record failed. Never escapes the cache."""


class ExportCancelledError(FigmaExportError):
    """The export was cancelled while waiting to retry."""
