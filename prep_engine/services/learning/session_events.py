"""
Session Event Stream

Push-style side channel for session activity (answers recorded, quizzes
completed, topics advanced, ...), decoupled from the request/response
session API.

Each subscriber gets its own bounded asyncio.Queue. Publishing never
blocks: when a subscriber falls behind, its oldest event is dropped.

Usage:
    stream = SessionEventStream()

    async for event in stream.events():
        print(event.event_type, event.payload)
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from typing import Any, Optional

from prep_engine.config import settings
from prep_engine.enums.learning import LearningPhase, SessionEventType
from prep_engine.models.learning import SessionEvent

logger = logging.getLogger(__name__)


class SessionEventStream:
    """Fan-out of SessionEvents to any number of subscribers."""

    def __init__(self, max_queue_size: Optional[int] = None):
        self.max_queue_size = max_queue_size or settings.SESSION_EVENT_QUEUE_SIZE
        self._subscribers: list[asyncio.Queue[SessionEvent]] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue[SessionEvent]:
        """Register a subscriber and return its queue."""
        queue: asyncio.Queue[SessionEvent] = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[SessionEvent]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def publish(
        self,
        event_type: SessionEventType,
        student_id: str,
        subject_id: str,
        topic_seq: Optional[int] = None,
        phase: Optional[LearningPhase] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> SessionEvent:
        """Build an event and deliver it to every subscriber."""
        event = SessionEvent(
            event_type=event_type,
            student_id=student_id,
            subject_id=subject_id,
            topic_seq=topic_seq,
            phase=phase,
            payload=payload or {},
            occurred_at=datetime.now(timezone.utc),
        )
        for queue in self._subscribers:
            if queue.full():
                queue.get_nowait()
                logger.debug(f"Subscriber queue full; dropped oldest event before {event_type.value}")
            queue.put_nowait(event)
        return event

    async def events(self) -> AsyncGenerator[SessionEvent, None]:
        """Yield events as they are published until the consumer stops."""
        queue = self.subscribe()
        try:
            while True:
                yield await queue.get()
        finally:
            self.unsubscribe(queue)
