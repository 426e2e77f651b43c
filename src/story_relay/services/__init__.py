"""
Story Relay Services

Session, store, state machine and view selection for the story client.
"""

from .transport import (
    ANONYMOUS_PRINCIPAL,
    InMemoryStoryBackend,
    RemoteError,
    StoryBackend,
)
from .session import (
    FatalInitError,
    Session,
    SessionInitializer,
    SessionNotReadyError,
)
from .story_store import StoryStore
from .state_machine import (
    InteractionStateMachine,
    InvalidTransitionError,
    MachineSnapshot,
)
from .view_selector import select_view

__all__ = [
    "ANONYMOUS_PRINCIPAL",
    "InMemoryStoryBackend",
    "RemoteError",
    "StoryBackend",
    "FatalInitError",
    "Session",
    "SessionInitializer",
    "SessionNotReadyError",
    "StoryStore",
    "InteractionStateMachine",
    "InvalidTransitionError",
    "MachineSnapshot",
    "select_view",
]
