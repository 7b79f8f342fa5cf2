class SongdropError(Exception):
    """Base class for engine errors."""


class Unauthorized(SongdropError):
    """The authorization gate is closed; no remote call was made."""


class RemoteFailure(SongdropError):
    """A paged fetch, playback lookup or append call failed. Carries the underlying message verbatim."""

    def __init__(self, message: str = "Remote call failed") -> None:
        super().__init__(message)
        self.message = message


class RateLimited(RemoteFailure):
    """Operation was rate limited by provider. Includes suggested wait time in milliseconds."""

    def __init__(self, retry_after_ms: int, message: str = "Rate limited") -> None:
        super().__init__(message)
        self.retry_after_ms = retry_after_ms


class TemporaryFailure(RemoteFailure):
    """Transient provider or network failure. Retrying may succeed."""


class PermanentFailure(RemoteFailure):
    """Non-retriable failure due to invalid input or authorization issues."""


class NotFound(RemoteFailure):
    """Requested resource was not found."""
