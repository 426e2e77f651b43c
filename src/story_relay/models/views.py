"""Render contexts produced by the view selector.

Each surface (CLI, Streamlit) renders exactly one of these per frame.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .story import Story, StoryDraft


@dataclass(frozen=True)
class ConnectingView:
    """Session is being established or the first fetch is in flight."""


@dataclass(frozen=True)
class ErrorView:
    """Full-screen error; the only way out is a reload."""

    message: str


@dataclass(frozen=True)
class StoryListView:
    stories: Tuple[Story, ...]
    draft: StoryDraft
    busy: bool = False  # mutation in flight, submit controls disabled
    notice: Optional[str] = None


@dataclass(frozen=True)
class StoryDetailView:
    story: Story
    continuation_draft: str
    busy: bool = False
    notice: Optional[str] = None


RenderContext = Union[ConnectingView, ErrorView, StoryListView, StoryDetailView]
