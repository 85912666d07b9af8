DEFAULT_RATE_LIMIT_MESSAGE = (
    "Embedding API rate limit exceeded. Please try decreasing the requests per second "
    "in settings, or wait for the rate limit to reset with your provider."
)


class EmbedClientError(Exception):
    """Base exception for embedding provider failures."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class EmbedRateLimitError(EmbedClientError):
    """The provider rejected the request because of a rate limit.

    ``message`` is meant for display and carries the provider's own text when
    the response body had one.
    """

    def __init__(self, message: str = DEFAULT_RATE_LIMIT_MESSAGE, status_code: int | None = 429):
        super().__init__(message, status_code=status_code)
        self.message = message


class EmbedUnavailableError(EmbedClientError):
    """No usable embedding provider (model or credentials missing)."""

    pass


def is_rate_limit_error(exc: BaseException) -> bool:
    """Classify a failure as a provider rate limit.

    Structured EmbedRateLimitError is recognised directly. Other exceptions
    are matched on their message so foreign clients keep working, except
    OSError (its message carries file names) and errors that already report
    a different HTTP status.
    """
    if isinstance(exc, EmbedRateLimitError):
        return True
    if isinstance(exc, OSError):
        return False
    status_code = getattr(exc, "status_code", None)
    if status_code is not None:
        return status_code == 429
    text = str(exc).lower()
    return "status code: 429" in text or "rate limit" in text


def rate_limit_message(exc: BaseException) -> str:
    """Return the user facing message of a rate limit failure."""
    if isinstance(exc, EmbedRateLimitError) and exc.message:
        return exc.message
    return DEFAULT_RATE_LIMIT_MESSAGE
