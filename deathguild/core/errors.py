"""
Exception hierarchy for the scraping, enrichment and publishing pipeline.
"""

from typing import Optional


class DeathGuildError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(DeathGuildError):
    """Raised when required configuration is missing or invalid."""


class ParseError(DeathGuildError):
    """Raised when a scraped document is missing an expected element or attribute."""


class EmptyPlaylistError(ParseError):
    """
    Raised when a playlist page parses cleanly but yields no songs.

    This almost always means the site's layout changed and our selectors no
    longer match, so it must never be stored as a valid empty playlist.
    """


class FetchError(DeathGuildError):
    """Raised when the legacy playlist site can't be retrieved."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ExternalAPIError(DeathGuildError):
    """Raised on a transport failure or non-success response from Spotify."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitExceeded(ExternalAPIError):
    """Raised when Spotify responds with 429 Too Many Requests."""

    def __init__(self, retry_after: int):
        super().__init__(
            f"Rate limited. Try again in {retry_after} seconds.", status_code=429
        )
        self.retry_after = retry_after


class PersistenceError(DeathGuildError):
    """Raised when a database operation fails; the transaction is rolled back."""


class JobsFailedError(DeathGuildError):
    """Raised when one or more jobs in a pool round errored."""

    def __init__(self, pool):
        super().__init__(
            f"{pool.jobs_errored} job(s) errored during last round"
        )
        self.pool = pool
