"""
Bookmark Tracker

Toggles a learner's saved elements (flashcards, buzzwords, gaps, tags,
images, videos, MCQs). Independent of the phase machine: toggling never
touches quiz or topic state, and no ordering with progress writes is
required.
"""

import logging
from typing import Any, Optional

from prep_engine.enums.learning import BookmarkElementType
from prep_engine.models.learning import Bookmark
from prep_engine.services.learning.progress_store import ProgressStore

logger = logging.getLogger(__name__)


class BookmarkTracker:
    """Bookmark set of one or more students over a ProgressStore."""

    def __init__(self, store: ProgressStore):
        self.store = store

    async def load(self, student_id: str) -> set[str]:
        """Return the ids of every element the student bookmarked."""
        bookmarks = await self.store.list_bookmarks(student_id)
        return {b.element_id for b in bookmarks}

    async def toggle(
        self,
        student_id: str,
        element_id: str,
        element_type: BookmarkElementType,
        metadata: Optional[dict[str, Any]] = None,
        current: Optional[set[str]] = None,
    ) -> bool:
        """
        Flip the bookmark state of one element.

        Args:
            student_id: Owner of the bookmark set
            element_id: Element to toggle; need not have been seen before
            element_type: Kind of element
            metadata: Free-form display payload stored with the bookmark
            current: Known bookmark ids; read from the store when omitted

        Returns:
            True if the element is now bookmarked, False if it was removed
        """
        if current is None:
            current = await self.load(student_id)

        if element_id in current:
            await self.store.remove_bookmark(student_id, element_id)
            logger.info(f"Removed bookmark {element_type.value}:{element_id} for {student_id}")
            return False

        await self.store.add_bookmark(
            Bookmark(
                student_id=student_id,
                element_id=element_id,
                element_type=element_type,
                metadata=metadata or {},
            )
        )
        logger.info(f"Added bookmark {element_type.value}:{element_id} for {student_id}")
        return True
