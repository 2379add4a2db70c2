"""Retry/backoff rules for failed fetch attempts."""

from scrapehub.enums import ScrapingStatus

BACKOFF_BASE_SECONDS = 3600  # 1 hour
BACKOFF_MAX_SECONDS = 86400 * 7  # 7 days
BLOCKED_STATUS_CODES = frozenset({403, 429})


def backoff_seconds(attempt: int) -> int:
    """Exponential backoff: base * 2^(attempt-1), capped at 7 days."""
    attempt = max(1, attempt)
    return int(min(BACKOFF_BASE_SECONDS * 2 ** (attempt - 1), BACKOFF_MAX_SECONDS))


def failure_status(status_code: int | None) -> ScrapingStatus:
    if status_code in BLOCKED_STATUS_CODES:
        return ScrapingStatus.BLOCKED
    return ScrapingStatus.FAILED


def attempts_exhausted(attempts: int, max_attempts: int) -> bool:
    return attempts >= max_attempts
