"""Scrape policy engine contract and shared helpers."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from scrapehub.models.base import utcnow
from scrapehub.services.policy.result import PolicyResult


class ScrapePolicyEngine(ABC):
    """Compute the next visit time and priority scores for an entity.

    Implementations must not mutate the entity; history is passed in
    already loaded, newest first.
    """

    def __init__(self, history_size: int = 5, default_interval_hours: float = 24):
        self.history_size = history_size
        self.default_interval_hours = default_interval_hours

    def evaluate(self, entity, snapshots, source=None, base_time: datetime | None = None) -> PolicyResult:
        base_time = base_time or utcnow()
        recent = list(snapshots)[: self.history_size]
        return self.perform_evaluation(entity, recent, source, base_time)

    @abstractmethod
    def perform_evaluation(self, entity, snapshots: list, source, base_time: datetime) -> PolicyResult:
        ...

    def default_result(self, base_time: datetime) -> PolicyResult:
        """Neutral scores and the configured revisit interval."""
        return PolicyResult(
            next_scrape_at=base_time + timedelta(hours=self.default_interval_hours),
            change_boost=0.5,
            value_boost=0.5,
            error_penalty=0.0,
            priority=0.5,
            urgency=0.5,
            cost_factor=0.5,
        )
