"""Entity change events emitted after committed transitions.

Subscribers are plain callables; they run synchronously in the emitting
process after the emitter's transaction has committed.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Callable

from scrapehub.enums import EntityType, ScrapingStatus

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
DELETED = "deleted"


@dataclass(frozen=True)
class EntityEvent:
    kind: str
    entity_id: uuid.UUID
    source_id: uuid.UUID
    old_type: EntityType | None = None
    old_status: ScrapingStatus | None = None
    new_type: EntityType | None = None
    new_status: ScrapingStatus | None = None

    @property
    def changes_bucket(self) -> bool:
        return self.old_type != self.new_type or self.old_status != self.new_status

    @classmethod
    def created(cls, entity) -> "EntityEvent":
        return cls(
            kind=CREATED,
            entity_id=entity.id,
            source_id=entity.source_id,
            new_type=entity.type or EntityType.UNCLASSIFIED,
            new_status=entity.scraping_status or ScrapingStatus.PENDING,
        )

    @classmethod
    def transition(
        cls,
        entity,
        old_status: ScrapingStatus,
        old_type: EntityType | None = None,
    ) -> "EntityEvent":
        return cls(
            kind=UPDATED,
            entity_id=entity.id,
            source_id=entity.source_id,
            old_type=old_type or entity.type,
            old_status=old_status,
            new_type=entity.type,
            new_status=entity.scraping_status,
        )


Subscriber = Callable[[EntityEvent], None]


class EntityEventBus:
    def __init__(self):
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> Subscriber:
        self._subscribers.append(subscriber)
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    def emit(self, event: EntityEvent) -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception as e:
                logger.warning(f"Entity event subscriber {subscriber!r} failed on {event.kind} {event.entity_id}: {e}")

    def emit_all(self, events: list[EntityEvent]) -> None:
        for event in events:
            self.emit(event)
