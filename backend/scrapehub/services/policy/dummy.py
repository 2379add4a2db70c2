"""Deterministic policy engine: constant scores and a fixed interval."""

from datetime import datetime, timedelta

from scrapehub.services.policy.base import ScrapePolicyEngine
from scrapehub.services.policy.result import PolicyResult


class DummyScrapePolicyEngine(ScrapePolicyEngine):
    def perform_evaluation(self, entity, snapshots: list, source, base_time: datetime) -> PolicyResult:
        return PolicyResult(
            next_scrape_at=base_time + timedelta(hours=self.default_interval_hours),
            change_boost=0.5,
            value_boost=0.5,
            error_penalty=0.0,
            priority=0.5,
            urgency=0.5,
            cost_factor=0.3,
        )
