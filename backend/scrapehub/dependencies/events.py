"""Event bus dependency for request handlers."""

from functools import lru_cache

from scrapehub.database import SyncSessionLocal
from scrapehub.events import EntityEventBus
from scrapehub.services.factory import build_event_bus


@lru_cache
def get_event_bus() -> EntityEventBus:
    return build_event_bus(SyncSessionLocal)
