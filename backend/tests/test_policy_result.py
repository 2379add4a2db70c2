from datetime import datetime, timezone

import pytest

from scrapehub.services.policy import PolicyResult


@pytest.mark.parametrize("value, expected", [
    (1.5, 1.0),
    (-0.3, 0.0),
    (0.666, 0.67),
    (0.5, 0.5),
])
def test_scores_are_clamped_and_rounded_on_assignment(value, expected):
    result = PolicyResult()
    result.change_boost = value
    assert result.change_boost == expected


def test_scores_are_clamped_on_construction():
    result = PolicyResult(priority=3, urgency=-1, cost_factor=0.12345)
    assert result.priority == 1.0
    assert result.urgency == 0.0
    assert result.cost_factor == 0.12


def test_to_dict_is_json_ready():
    when = datetime(2026, 10, 20, 12, 0, tzinfo=timezone.utc)
    data = PolicyResult(next_scrape_at=when, value_boost=0.8).to_dict()

    assert data["next_scrape_at"].startswith("2026-10-20T12:00:00")
    assert data["value_boost"] == 0.8
    assert set(data) == {
        "next_scrape_at", "change_boost", "value_boost", "error_penalty", "priority", "urgency", "cost_factor",
    }


def test_from_dict_restores_result():
    when = datetime(2026, 10, 20, 12, 0, tzinfo=timezone.utc)
    original = PolicyResult(next_scrape_at=when, priority=0.4, urgency=0.9)

    restored = PolicyResult.from_dict(original.to_dict())

    assert restored.next_scrape_at == when
    assert restored.priority == 0.4
    assert restored.urgency == 0.9
