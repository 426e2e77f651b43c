"""Story backend protocol and implementations.

Defines the remote operations the client may invoke. The canister client
(story_relay.gateway_client) talks to the real backend over HTTP; the
in-memory backend is for tests and offline demos.

Logical declines (a closed story, a duplicate vote, a tied selection) are
return values. Only calls that could not complete raise RemoteError.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol, Set, Tuple

from ..models import Continuation, Story

logger = logging.getLogger(__name__)

ANONYMOUS_PRINCIPAL = "2vxsx-fae"


class RemoteError(Exception):
    """A backend call could not complete (transport failure or rejection)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class StoryBackend(Protocol):
    """Protocol for story backends.

    The session, story store and state machine depend on this, not on any
    specific implementation.
    """

    async def create_story(self, title: str, introduction: str) -> int:
        """Create a story. Returns the backend-assigned story ID."""
        ...

    async def submit_continuation(self, story_id: int, content: str) -> Optional[int]:
        """Submit a continuation. Returns None if the story is missing or closed."""
        ...

    async def vote(self, story_id: int, continuation_id: int) -> bool:
        """Vote for a continuation. False if rejected (duplicate voter, unknown target)."""
        ...

    async def select_winning_continuation(self, story_id: int) -> bool:
        """Promote the leading continuation. False if no selection could be made."""
        ...

    async def get_story(self, story_id: int) -> Optional[Story]:
        """Get one story, or None if it does not exist."""
        ...

    async def get_all_stories(self) -> List[Story]:
        """Get every story in backend order."""
        ...

    async def fetch_root_key(self) -> bytes:
        """Fetch the backend's root key (development trust bootstrap)."""
        ...


class InMemoryStoryBackend:
    """In-memory story backend for testing.

    Implements the backend's business rules over a dict of frozen stories.
    Every call is recorded in `calls` and yields to the event loop once,
    so concurrent callers interleave the way they would against a network.
    """

    def __init__(
        self,
        caller: str = ANONYMOUS_PRINCIPAL,
        next_story_id: int = 0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.caller = caller
        self.stories: Dict[int, Story] = {}
        self.closed_story_ids: Set[int] = set()
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self._next_story_id = next_story_id
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _enter(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        await asyncio.sleep(0)

    def calls_to(self, method: str) -> List[Tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    def close_story(self, story_id: int) -> None:
        """Stop accepting continuations for a story."""
        self.closed_story_ids.add(story_id)

    async def create_story(self, title: str, introduction: str) -> int:
        await self._enter("create_story", title, introduction)
        story_id = self._next_story_id
        self._next_story_id += 1
        self.stories[story_id] = Story(
            id=story_id,
            title=title,
            introduction=introduction,
            author=self.caller,
            created_at=self._clock(),
        )
        return story_id

    async def submit_continuation(self, story_id: int, content: str) -> Optional[int]:
        await self._enter("submit_continuation", story_id, content)
        story = self.stories.get(story_id)
        if story is None or story_id in self.closed_story_ids:
            return None

        continuation = Continuation(
            id=len(story.continuations),
            content=content,
            author=self.caller,
            created_at=self._clock(),
        )
        self.stories[story_id] = story.model_copy(
            update={"continuations": story.continuations + (continuation,)}
        )
        return continuation.id

    async def vote(self, story_id: int, continuation_id: int) -> bool:
        await self._enter("vote", story_id, continuation_id)
        story = self.stories.get(story_id)
        if story is None:
            return False
        target = story.get_continuation(continuation_id)
        if target is None or self.caller in target.voters:
            return False

        voted = target.model_copy(
            update={"votes": target.votes + 1, "voters": target.voters + (self.caller,)}
        )
        self.stories[story_id] = story.model_copy(
            update={
                "continuations": tuple(
                    voted if c.id == continuation_id else c for c in story.continuations
                )
            }
        )
        return True

    async def select_winning_continuation(self, story_id: int) -> bool:
        await self._enter("select_winning_continuation", story_id)
        story = self.stories.get(story_id)
        if story is None:
            return False

        candidates = [
            c for c in story.continuations if c.id not in story.selected_continuations
        ]
        if not candidates:
            return False

        top_votes = max(c.votes for c in candidates)
        leaders = [c for c in candidates if c.votes == top_votes]
        if len(leaders) > 1:
            return False  # tie unresolved

        self.stories[story_id] = story.model_copy(
            update={"selected_continuations": story.selected_continuations + (leaders[0].id,)}
        )
        return True

    async def get_story(self, story_id: int) -> Optional[Story]:
        await self._enter("get_story", story_id)
        return self.stories.get(story_id)

    async def get_all_stories(self) -> List[Story]:
        await self._enter("get_all_stories")
        return list(self.stories.values())

    async def fetch_root_key(self) -> bytes:
        await self._enter("fetch_root_key")
        return b"in-memory-root-key"
