"""Interaction State Machine.

Governs what the user can do while the client talks to the backend.

Primary states:
- connecting: session being established, first fetch in flight
- ready-idle: user may edit drafts, navigate and trigger mutations
- submitting: one mutation in flight; further mutations are ignored
- error: full-screen failure; only reload() leaves it

The selected story is an orthogonal slot: selecting or deselecting never
changes the primary state and is only legal from ready-idle.

Every backend failure is caught here and converted into the error state;
none escapes the public coroutines. Logical declines (closed story,
rejected vote, unresolved tie) are return values surfaced as a notice.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from ..config import DeploymentConfig
from ..models import LOADING_STATES, InteractionState, Story, StoryDraft
from .session import BackendFactory, FatalInitError, SessionInitializer
from .story_store import StoryStore
from .transport import RemoteError, StoryBackend

logger = logging.getLogger(__name__)

VALID_TRANSITIONS = {
    InteractionState.CONNECTING: {InteractionState.READY_IDLE, InteractionState.ERROR},
    InteractionState.READY_IDLE: {InteractionState.SUBMITTING},
    InteractionState.SUBMITTING: {InteractionState.READY_IDLE, InteractionState.ERROR},
    InteractionState.ERROR: {InteractionState.CONNECTING},
}


class InvalidTransitionError(Exception):
    """Raised when a state transition is not allowed."""

    pass


@dataclass(frozen=True)
class MachineSnapshot:
    """Immutable view of the machine, consumed by the view selector."""

    state: InteractionState
    error: Optional[str]
    stories: Tuple[Story, ...]
    selected_story: Optional[Story]
    story_draft: StoryDraft
    continuation_draft: str
    notice: Optional[str] = None

    @property
    def loading(self) -> bool:
        return self.state in LOADING_STATES


class InteractionStateMachine:
    """Drives the session, the story store and every mutation for one client."""

    def __init__(
        self,
        config: DeploymentConfig,
        backend_factory: Optional[BackendFactory] = None,
    ):
        self.config = config
        self.backend_factory = backend_factory
        self._reset()

    def _reset(self) -> None:
        self.initializer = SessionInitializer(self.config, self.backend_factory)
        self.state = InteractionState.CONNECTING
        self.error: Optional[str] = None
        self.store: Optional[StoryStore] = None
        self.selected_story: Optional[Story] = None
        self.story_draft = StoryDraft()
        self.continuation_draft = ""
        self.notice: Optional[str] = None
        self._started = False

    @property
    def loading(self) -> bool:
        return self.state in LOADING_STATES

    @property
    def stories(self) -> Tuple[Story, ...]:
        return self.store.stories if self.store else ()

    @property
    def _backend(self) -> StoryBackend:
        return self.initializer.session.backend

    def snapshot(self) -> MachineSnapshot:
        return MachineSnapshot(
            state=self.state,
            error=self.error,
            stories=self.stories,
            selected_story=self.selected_story,
            story_draft=self.story_draft,
            continuation_draft=self.continuation_draft,
            notice=self.notice,
        )

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def start(self) -> InteractionState:
        """Establish the session and load the first snapshot.

        connecting -> ready-idle, or connecting -> error.
        Calling it again once started is a no-op.
        """
        if self._started:
            return self.state
        if self.state != InteractionState.CONNECTING:
            raise InvalidTransitionError(
                f"Cannot start from {self.state.value}; use reload() to recover"
            )
        self._started = True

        try:
            session = await self.initializer.initialize()
        except FatalInitError as e:
            self._fail("initialize backend", e)
            return self.state

        self.store = StoryStore(session)
        try:
            await self.store.refresh()
        except RemoteError as e:
            self._fail("fetch stories", e)
            return self.state

        self._transition(InteractionState.READY_IDLE)
        return self.state

    async def reload(self) -> InteractionState:
        """Full reload: drop all client state and reconnect from scratch.

        Only legal from the error state.
        """
        if self.state != InteractionState.ERROR:
            raise InvalidTransitionError(
                f"Reload is only available from error, not {self.state.value}"
            )
        logger.info("Reloading client")
        self._transition(InteractionState.CONNECTING)
        self._reset()
        return await self.start()

    # ========================================================================
    # Drafts and navigation
    # ========================================================================

    def update_story_draft(
        self,
        title: Optional[str] = None,
        introduction: Optional[str] = None,
    ) -> StoryDraft:
        updates = {}
        if title is not None:
            updates["title"] = title
        if introduction is not None:
            updates["introduction"] = introduction
        self.story_draft = self.story_draft.model_copy(update=updates)
        return self.story_draft

    def set_continuation_draft(self, text: str) -> None:
        self.continuation_draft = text

    def select_story(self, story_id: int) -> Story:
        """Open a story from the current snapshot."""
        self._require_idle("select a story")
        story = self.store.get(story_id)
        if story is None:
            raise ValueError(f"Story {story_id} not found")
        self.selected_story = story
        self.notice = None
        return story

    def deselect_story(self) -> None:
        """Go back to the story list."""
        self._require_idle("go back")
        self.selected_story = None
        self.notice = None

    # ========================================================================
    # Mutations
    # ========================================================================

    async def create_story(self) -> Optional[int]:
        """Create a story from the story draft.

        Returns the new story ID, or None if the trigger was ignored
        (busy, incomplete draft) or the call failed.
        """
        if not self._try_begin("create story", ready=self.story_draft.is_complete):
            return None
        draft = self.story_draft

        try:
            logger.info(f"Creating new story: {draft.title!r}")
            story_id = await self._backend.create_story(draft.title, draft.introduction)
            logger.info(f"Story created with ID: {story_id}")
            await self.store.refresh()
        except RemoteError as e:
            self._fail("create story", e)
            return None

        self.story_draft = StoryDraft()
        self._transition(InteractionState.READY_IDLE)
        return story_id

    async def submit_continuation(self) -> Optional[int]:
        """Submit the continuation draft to the selected story.

        A None result from the backend (story missing or closed) is a valid
        outcome: the store is still refreshed, the draft is cleared and a
        notice records the decline.
        """
        ready = self.selected_story is not None and bool(self.continuation_draft.strip())
        if not self._try_begin("submit continuation", ready=ready):
            return None
        story_id = self.selected_story.id
        content = self.continuation_draft

        try:
            logger.info(f"Submitting continuation for story: {story_id}")
            continuation_id = await self._backend.submit_continuation(story_id, content)
            await self.store.refresh()
        except RemoteError as e:
            self._fail("submit continuation", e)
            return None

        if continuation_id is None:
            logger.info(f"Story {story_id} declined the continuation")
            self.notice = f"Story {story_id} is not accepting continuations."
        else:
            logger.info(f"Continuation submitted with ID: {continuation_id}")
        self.continuation_draft = ""
        self._transition(InteractionState.READY_IDLE)
        return continuation_id

    async def vote(self, continuation_id: int) -> Optional[bool]:
        """Vote for a continuation of the selected story.

        Vote counts are never adjusted locally. The snapshot is only
        re-fetched when config.refresh_after_vote is set.
        """
        if not self._try_begin("vote", ready=self.selected_story is not None):
            return None
        story_id = self.selected_story.id

        try:
            accepted = await self._backend.vote(story_id, continuation_id)
            if self.config.refresh_after_vote:
                await self.store.refresh()
        except RemoteError as e:
            self._fail("vote", e)
            return None

        if not accepted:
            logger.info(f"Vote for continuation {continuation_id} on story {story_id} was rejected")
            self.notice = f"Vote for continuation {continuation_id} was not accepted."
        self._transition(InteractionState.READY_IDLE)
        return accepted

    async def select_winning_continuation(self) -> Optional[bool]:
        """Ask the backend to promote the selected story's leading continuation."""
        if not self._try_begin("select winning continuation", ready=self.selected_story is not None):
            return None
        story_id = self.selected_story.id

        try:
            selected = await self._backend.select_winning_continuation(story_id)
            if self.config.refresh_after_vote:
                await self.store.refresh()
        except RemoteError as e:
            self._fail("select winning continuation", e)
            return None

        if not selected:
            logger.info(f"No winning continuation could be selected for story {story_id}")
            self.notice = "No winning continuation could be selected."
        self._transition(InteractionState.READY_IDLE)
        return selected

    # ========================================================================
    # Internal helpers
    # ========================================================================

    def _transition(self, target: InteractionState) -> None:
        allowed = VALID_TRANSITIONS.get(self.state, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition from {self.state.value} to {target.value}. "
                f"Allowed: {[s.value for s in allowed]}"
            )
        logger.debug(f"State {self.state.value} -> {target.value}")
        self.state = target

    def _require_idle(self, action: str) -> None:
        if self.state != InteractionState.READY_IDLE:
            raise InvalidTransitionError(
                f"Cannot {action} while {self.state.value}"
            )

    def _try_begin(self, action: str, ready: bool) -> bool:
        """Enter submitting if a mutation may start; otherwise ignore the trigger."""
        if self.state != InteractionState.READY_IDLE:
            logger.debug(f"Ignoring {action} while {self.state.value}")
            return False
        if not ready:
            logger.debug(f"Ignoring {action}: nothing to submit")
            return False
        self.notice = None
        self._transition(InteractionState.SUBMITTING)
        return True

    def _fail(self, action: str, exc: Exception) -> None:
        self.error = f"Failed to {action}: {exc}"
        logger.error(self.error)
        self._transition(InteractionState.ERROR)

