class FeedError(Exception):
    """Base exception for vehicle-position feed failures."""


class FetchTransportError(FeedError):
    """The HTTP request failed or returned a non-success status."""


class FetchDecodeError(FeedError):
    """The payload could not be decoded as a GTFS-Realtime FeedMessage."""


class FetchExhaustedError(FeedError):
    """Raised when every fetch attempt of a cycle has failed."""

    def __init__(self, attempts: int, last_error: FeedError | None = None) -> None:
        super().__init__(
            f"Feed fetch failed after {attempts} attempt(s): {last_error}"
        )
        self.attempts = attempts
        self.last_error = last_error
