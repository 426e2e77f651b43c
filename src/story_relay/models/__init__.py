"""
Story Relay Models

Pydantic mirrors of backend state plus client-local drafts and view contexts.
"""

from .enums import LOADING_STATES, Environment, InteractionState, SessionStatus
from .story import Continuation, Story, StoryDraft, parse_nanos
from .views import (
    ConnectingView,
    ErrorView,
    RenderContext,
    StoryDetailView,
    StoryListView,
)

__all__ = [
    "LOADING_STATES",
    "Environment",
    "InteractionState",
    "SessionStatus",
    "Continuation",
    "Story",
    "StoryDraft",
    "parse_nanos",
    "ConnectingView",
    "ErrorView",
    "RenderContext",
    "StoryDetailView",
    "StoryListView",
]
