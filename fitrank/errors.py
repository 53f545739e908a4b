"""Exceptions raised across the recommendation pipeline."""


class NotConfiguredError(RuntimeError):
    """Raised when a tenant enables ranking without a usable credential."""
    pass


class RankingServiceError(RuntimeError):
    """Raised when the ranking service fails in a way that is not retried."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RankingParseError(RuntimeError):
    """Raised when a ranking reply cannot be repaired into a valid document."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class RateLimitExceededError(RuntimeError):
    """Raised when a tenant's ranking request quota is exhausted."""

    def __init__(self, reason: str, wait_seconds: float | None = None):
        super().__init__(reason)
        self.wait_seconds = wait_seconds
