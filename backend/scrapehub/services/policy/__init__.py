"""Scrape policy engines."""

from scrapehub.services.policy.base import ScrapePolicyEngine  # noqa: F401
from scrapehub.services.policy.dummy import DummyScrapePolicyEngine  # noqa: F401
from scrapehub.services.policy.result import PolicyResult  # noqa: F401
from scrapehub.services.policy.signal_decay import (  # noqa: F401
    OpenAIPolicyScorer,
    PolicyEvaluationError,
    PolicyScorer,
    SignalDecayPolicyEngine,
)
