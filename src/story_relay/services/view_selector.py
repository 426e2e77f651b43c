"""View selector: pure projection of a machine snapshot to a render context."""

from ..models import (
    ConnectingView,
    ErrorView,
    InteractionState,
    RenderContext,
    StoryDetailView,
    StoryListView,
)
from .state_machine import MachineSnapshot


def select_view(snapshot: MachineSnapshot) -> RenderContext:
    """Decide what to render.

    Error takes precedence over everything, including a raised loading flag.
    The open story is looked up by id in the latest snapshot so that a
    refresh after a submission is visible; the selected copy is the fallback.
    """
    if snapshot.error is not None:
        return ErrorView(message=snapshot.error)

    if snapshot.state == InteractionState.CONNECTING:
        return ConnectingView()

    busy = snapshot.state == InteractionState.SUBMITTING

    if snapshot.selected_story is not None:
        story = next(
            (s for s in snapshot.stories if s.id == snapshot.selected_story.id),
            snapshot.selected_story,
        )
        return StoryDetailView(
            story=story,
            continuation_draft=snapshot.continuation_draft,
            busy=busy,
            notice=snapshot.notice,
        )

    return StoryListView(
        stories=snapshot.stories,
        draft=snapshot.story_draft,
        busy=busy,
        notice=snapshot.notice,
    )
