"""Historical signals calculated locally from recent snapshots.

All functions take snapshots ordered newest-first and already limited to
the evaluation window.
"""

from scrapehub.enums import ScrapingStatus

DEFAULT_CHANGE_BOOST = 0.5
DEFAULT_COST_FACTOR = 0.5
DEFAULT_ERROR_PENALTY = 0.0

# Normalization ceilings for the cost blend
MAX_COST = 10.0
MAX_CONTENT_LENGTH = 1_000_000
MAX_MEDIA_COUNT = 100
MAX_FETCH_DURATION_MS = 30_000
MAX_STRUCTURED_DATA_COUNT = 50

COST_WEIGHTS = {
    "cost": 0.4,
    "content_length": 0.25,
    "media_count": 0.15,
    "fetch_duration_ms": 0.1,
    "structured_data_count": 0.1,
}
COST_CEILINGS = {
    "cost": MAX_COST,
    "content_length": MAX_CONTENT_LENGTH,
    "media_count": MAX_MEDIA_COUNT,
    "fetch_duration_ms": MAX_FETCH_DURATION_MS,
    "structured_data_count": MAX_STRUCTURED_DATA_COUNT,
}


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def calculate_change_boost(snapshots) -> float:
    """Average content change percentage / 100; 0.5 without change data."""
    changes = [s.content_change_percentage for s in snapshots if s.content_change_percentage is not None]
    if not changes:
        return DEFAULT_CHANGE_BOOST
    return _clamp(sum(changes) / len(changes) / 100.0)


def calculate_cost_factor(snapshots) -> float:
    """Weighted blend of the most recent snapshot's cost metrics; 0.5 without history."""
    if not snapshots:
        return DEFAULT_COST_FACTOR

    latest = snapshots[0]
    factor = 0.0
    for attr, weight in COST_WEIGHTS.items():
        value = getattr(latest, attr, None) or 0
        factor += min(1.0, value / COST_CEILINGS[attr]) * weight
    return _clamp(factor)


def calculate_error_penalty(snapshots) -> float:
    """Share of error-class snapshots (FAILED, TIMEOUT, BLOCKED); 0.0 without history."""
    if not snapshots:
        return DEFAULT_ERROR_PENALTY
    errors = ScrapingStatus.error_statuses()
    error_count = sum(1 for s in snapshots if s.scraping_status in errors)
    return _clamp(error_count / len(snapshots))
