"""Models package: import all models so relationships resolve."""

from scrapehub.models.base import Base  # noqa: F401
from scrapehub.models.source import Source  # noqa: F401
from scrapehub.models.entity import Entity  # noqa: F401
from scrapehub.models.snapshot import Snapshot  # noqa: F401
from scrapehub.models.entity_count import EntityCount  # noqa: F401
