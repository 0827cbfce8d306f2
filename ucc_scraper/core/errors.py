"""Exception taxonomy for the scraping engine.

``retryable`` is read by the retry coordinator: terminal errors stop the
retry loop at once, anything else (including driver timeouts that carry no
``retryable`` attribute) is treated as transient.
"""


class ScraperError(Exception):
    """Base class for engine errors."""

    retryable: bool = True


class InvalidQueryError(ScraperError):
    """Query is empty or too long. Raised before any network activity."""

    retryable = False


class BlockDetectedError(ScraperError):
    """An anti-bot challenge was served instead of results."""

    retryable = False

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"CAPTCHA detected ({reason}) - manual intervention required")


class TransientScrapeError(ScraperError):
    """Navigation or content failure worth another attempt."""

    retryable = True


class RetryError(ScraperError):
    """Raised by the retry coordinator when it gives up.

    ``terminal`` is True when the last error was non-retryable, False when
    attempts ran out.
    """

    retryable = False

    def __init__(self, label: str, attempts: int, last_error: BaseException) -> None:
        self.label = label
        self.attempts = attempts
        self.last_error = last_error
        self.terminal = not getattr(last_error, "retryable", True)
        super().__init__(f"{label} failed after {attempts} attempt(s): {last_error}")
