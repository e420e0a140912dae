"""Exception hierarchy shared by every layer of the analyzer."""
from typing import Any, List, Optional


class AnalyzerError(Exception):
    """Base class for all analyzer errors."""
    pass


class ConfigurationError(AnalyzerError):
    """Raised when run parameters are missing or malformed."""
    pass


class BitbucketAPIError(AnalyzerError):
    """Base class for failures talking to the Bitbucket server."""
    pass


class TransportError(BitbucketAPIError):
    """Raised when a request fails or returns anything other than HTTP 200."""

    def __init__(self, message: str, url: str, status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status


class ResponseDecodeError(BitbucketAPIError):
    """Raised when a response body is not the JSON shape we expect."""
    pass


class PaginationError(BitbucketAPIError):
    """Raised when a paginated listing aborts part way through.

    ``items`` holds whatever was accumulated before the failing page.
    """

    def __init__(self, message: str, items: Optional[List[Any]] = None):
        super().__init__(message)
        self.items = list(items or [])


class CollectionError(AnalyzerError):
    """Raised when projects or repositories cannot be enumerated."""
    pass


class ReportError(AnalyzerError):
    """Raised when the report file cannot be written."""
    pass
