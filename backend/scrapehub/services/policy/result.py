"""Policy evaluation result."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

SCORE_FIELDS = ("change_boost", "value_boost", "error_penalty", "priority", "urgency", "cost_factor")


def clamp_score(value: float) -> float:
    return round(max(0.0, min(1.0, float(value))), 2)


class PolicyResult(BaseModel):
    """Next visit time plus bounded scores.

    Every score is clamped to [0, 1] and rounded to 2 decimals on
    construction and on every assignment.
    """

    model_config = ConfigDict(validate_assignment=True)

    next_scrape_at: datetime | None = None
    change_boost: float = 0.0
    value_boost: float = 0.0
    error_penalty: float = 0.0
    priority: float = 0.0
    urgency: float = 0.0
    cost_factor: float = 0.0

    @field_validator(*SCORE_FIELDS)
    @classmethod
    def _clamp(cls, value: float) -> float:
        return clamp_score(value)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PolicyResult":
        return cls.model_validate({k: v for k, v in data.items() if v is not None})
