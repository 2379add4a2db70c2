"""Signal-decay policy engine.

change_boost, cost_factor and error_penalty are calculated locally from
recent snapshots. value_boost, priority, urgency and the revisit interval
come from an external scorer; its reply is validated here and a malformed
reply fails the evaluation.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any

from openai import OpenAI
from pydantic import BaseModel, ConfigDict, ValidationError

from scrapehub.models.base import as_utc
from scrapehub.services.openai_client import CollaboratorError, request_structured_output
from scrapehub.services.policy.base import ScrapePolicyEngine
from scrapehub.services.policy.result import PolicyResult
from scrapehub.services.policy.signals import (
    calculate_change_boost,
    calculate_cost_factor,
    calculate_error_penalty,
)

logger = logging.getLogger(__name__)

MAX_NEXT_SCRAPE_HOURS = 8760


class PolicyEvaluationError(CollaboratorError):
    """The external scorer failed or returned output that does not validate."""


class PolicyScores(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value_boost: float
    priority: float
    urgency: float
    next_scrape_at_hours: float


class PolicyScorer(ABC):
    @abstractmethod
    def score(self, context: dict[str, Any], base_time: datetime) -> str | dict:
        """Return the raw scorer reply (JSON text or an already decoded dict)."""
        ...


class SignalDecayPolicyEngine(ScrapePolicyEngine):
    def __init__(self, scorer: PolicyScorer, history_size: int = 5, default_interval_hours: float = 24):
        super().__init__(history_size=history_size, default_interval_hours=default_interval_hours)
        self.scorer = scorer

    def perform_evaluation(self, entity, snapshots: list, source, base_time: datetime) -> PolicyResult:
        if not snapshots:
            return self.default_result(base_time)

        change_boost = calculate_change_boost(snapshots)
        cost_factor = calculate_cost_factor(snapshots)
        error_penalty = calculate_error_penalty(snapshots)

        context = self.build_context(entity, snapshots, source, base_time, change_boost, cost_factor, error_penalty)
        try:
            reply = self.scorer.score(context, base_time)
        except CollaboratorError as e:
            raise PolicyEvaluationError(f"Policy scorer failed for entity {entity.id}: {e}") from e

        scores = self.parse_scores(reply)
        hours = max(0.0, min(float(MAX_NEXT_SCRAPE_HOURS), scores.next_scrape_at_hours))

        return PolicyResult(
            next_scrape_at=base_time + timedelta(hours=hours),
            change_boost=change_boost,
            value_boost=scores.value_boost,
            error_penalty=error_penalty,
            priority=scores.priority,
            urgency=scores.urgency,
            cost_factor=cost_factor,
        )

    @staticmethod
    def parse_scores(reply: str | dict) -> PolicyScores:
        try:
            if isinstance(reply, (str, bytes)):
                return PolicyScores.model_validate_json(reply)
            return PolicyScores.model_validate(reply)
        except ValidationError as e:
            raise PolicyEvaluationError(f"Malformed policy scorer reply: {e}") from e

    @staticmethod
    def build_context(
        entity,
        snapshots: list,
        source,
        base_time: datetime,
        change_boost: float,
        cost_factor: float,
        error_penalty: float,
    ) -> dict[str, Any]:
        fetched_at = as_utc(entity.fetched_at)
        changes = [s.content_change_percentage for s in snapshots if s.content_change_percentage is not None]
        costs = [s.cost for s in snapshots if s.cost is not None]
        current = snapshots[0]

        def value_of(enum_value):
            return enum_value.value if enum_value is not None else None

        return {
            "url": entity.url,
            "type": value_of(entity.type) or "unclassified",
            "page_type": value_of(entity.page_type) or "unknown",
            "content_type": value_of(entity.content_type) or "unknown",
            "temporal": value_of(entity.temporal) or "unknown",
            "scraping_status": value_of(entity.scraping_status) or "pending",
            "total_snapshots": entity.snapshots_count or 0,
            "last_scraped": fetched_at.isoformat() if fetched_at else "never",
            "days_since_last_scrape": (base_time - fetched_at).days if fetched_at else None,
            "source_published_at": entity.source_published_at.isoformat() if entity.source_published_at else "unknown",
            "source_updated_at": entity.source_updated_at.isoformat() if entity.source_updated_at else "unknown",
            "source_authority_score": source.authority_score if source is not None else 0,
            "source_priority": round(source.priority if source is not None and source.priority is not None else 0.5, 2),
            "current_snapshot": {
                "content_length": current.content_length,
                "structured_data_count": current.structured_data_count or 0,
                "media_count": current.media_count or 0,
                "link_count": current.link_count or 0,
                "cost": current.cost or 0.0,
            },
            "recent_snapshot_metrics": {
                "average_change_percentage": round(sum(changes) / len(changes), 2) if changes else 0.0,
                "average_cost": round(sum(costs) / len(costs), 2) if costs else 0.0,
            },
            "calculated_factors": {
                "change_boost": round(change_boost, 2),
                "cost_factor": round(cost_factor, 2),
                "error_penalty": round(error_penalty, 2),
            },
        }


class OpenAIPolicyScorer(PolicyScorer):
    def __init__(self, client: OpenAI, model: str = "gpt-4o-mini"):
        self.client = client
        self.model = model

    def score(self, context: dict[str, Any], base_time: datetime) -> str:
        return request_structured_output(
            self.client,
            self.model,
            self.build_prompt(context, base_time),
            "scrape_policy_evaluation",
            self.build_json_schema(),
        )

    @staticmethod
    def build_prompt(context: dict[str, Any], base_time: datetime) -> str:
        context_json = json.dumps(context, indent=2, default=str)
        return f"""You are a scraping policy engine that evaluates when and how frequently web pages should be scraped.

Entity Information:
{context_json}

The calculated_factors were derived from historical snapshots:
- change_boost: how often the content changes (0.7-1.0 frequently, 0.0-0.4 static)
- cost_factor: relative cost of scraping (cost, content length, media, fetch duration, structured data)
- error_penalty: historical error rate (FAILED, TIMEOUT, BLOCKED)

source_authority_score (0-100) rates how trusted or valuable the source is.
source_priority (0.0-1.0) is the business priority of the source.

Return:
1. value_boost (0.0-1.0): how valuable the content is. Weigh content type, page type, structured data and authority.
2. priority (0.0-1.0): overall scraping priority. Combine the calculated factors, value_boost, authority and source priority.
3. urgency (0.0-1.0): how urgent a re-scrape is now. Weigh days since last scrape, temporal nature and change_boost.
4. next_scrape_at_hours (0-{MAX_NEXT_SCRAPE_HOURS}): hours from base time until the next scrape.
   Breaking news 1-6, daily news 6-24, weekly 24-168, monthly 168-720, static 720-8760.

Base Time: {base_time.isoformat()}"""

    @staticmethod
    def build_json_schema() -> dict:
        properties = {
            "value_boost": {"type": "number", "minimum": 0.0, "maximum": 1.0},
            "priority": {"type": "number", "minimum": 0.0, "maximum": 1.0},
            "urgency": {"type": "number", "minimum": 0.0, "maximum": 1.0},
            "next_scrape_at_hours": {"type": "number", "minimum": 0, "maximum": MAX_NEXT_SCRAPE_HOURS},
        }
        return {
            "type": "object",
            "properties": properties,
            "required": list(properties),
            "additionalProperties": False,
        }
