"""
Story Store

In-memory mirror of backend story state. The mirror is only ever replaced
wholesale from getAllStories; it is never patched locally.
"""

import logging
from typing import Optional, Tuple

from ..models import Story
from .session import Session

logger = logging.getLogger(__name__)


class StoryStore:
    """Last fetched snapshot of every story, in backend order."""

    def __init__(self, session: Session):
        self.session = session
        self._stories: Tuple[Story, ...] = ()

    @property
    def stories(self) -> Tuple[Story, ...]:
        return self._stories

    def get(self, story_id: int) -> Optional[Story]:
        """Look a story up in the current snapshot (no remote call)."""
        for story in self._stories:
            if story.id == story_id:
                return story
        return None

    async def refresh(self) -> Tuple[Story, ...]:
        """Re-fetch every story and replace the snapshot.

        On failure the previous snapshot is kept and RemoteError propagates.
        """
        stories = tuple(await self.session.backend.get_all_stories())
        self._stories = stories
        logger.debug(f"Refreshed story snapshot: {len(stories)} stories")
        return stories
