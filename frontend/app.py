"""
Story Writing App

Streamlit front end for collaborative branching stories. All state lives in
one InteractionStateMachine kept in session state; every frame renders the
view selector's output for the current snapshot.

Run with:
    streamlit run frontend/app.py

Backend selection comes from STORY_RELAY_ENV / CANISTER_ID_BACKEND /
STORY_RELAY_GATEWAY_URL (.env is read).
"""

import asyncio
import sys
from pathlib import Path

import streamlit as st

# Page config must be first Streamlit command
st.set_page_config(
    page_title="Story Writing App",
    page_icon="📖",
    layout="centered",
)

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from story_relay.config import DeploymentConfig
from story_relay.logging_utils import configure_safe_logging
from story_relay.models import ConnectingView, ErrorView, StoryDetailView, StoryListView
from story_relay.services import InteractionStateMachine, select_view

# One machine per browser session; it is the client's whole lifetime
if "machine" not in st.session_state:
    configure_safe_logging()
    machine = InteractionStateMachine(DeploymentConfig.from_env())
    with st.spinner("Connecting to backend..."):
        asyncio.run(machine.start())
    st.session_state.machine = machine

machine = st.session_state.machine


def render_error(view: ErrorView):
    st.header("Error")
    st.error(view.message)
    if st.button("Retry", type="primary"):
        with st.spinner("Reconnecting..."):
            asyncio.run(machine.reload())
        st.rerun()


def render_story_list(view: StoryListView):
    with st.form("create_story"):
        title = st.text_input("Story Title", value=view.draft.title)
        introduction = st.text_area("Story Introduction", value=view.draft.introduction, height=100)
        submitted = st.form_submit_button(
            "Creating..." if view.busy else "Create Story",
            disabled=view.busy,
        )

    if submitted:
        machine.update_story_draft(title=title, introduction=introduction)
        if not machine.story_draft.is_complete:
            st.warning("Title and introduction are both required.")
        else:
            asyncio.run(machine.create_story())
            st.rerun()

    if view.notice:
        st.info(view.notice)

    st.subheader("Existing Stories")
    if not view.stories:
        st.write("No stories yet. Be the first to create one!")

    for story in view.stories:
        with st.container(border=True):
            st.markdown(f"### {story.title}")
            st.write(story.introduction)
            if st.button("Open", key=f"open-{story.id}", disabled=view.busy):
                machine.select_story(story.id)
                st.rerun()


def render_story_detail(view: StoryDetailView):
    story = view.story
    st.header(story.title)
    st.write(story.introduction)
    for continuation in story.selected:
        st.write(continuation.content)

    if view.notice:
        st.info(view.notice)

    candidates = [c for c in story.continuations if c.id not in story.selected_continuations]
    if candidates:
        st.subheader("Candidate continuations")
        for continuation in candidates:
            col1, col2 = st.columns([5, 1])
            with col1:
                st.write(continuation.content)
                st.caption(f"{continuation.votes} votes")
            with col2:
                if st.button("Vote", key=f"vote-{continuation.id}", disabled=view.busy):
                    asyncio.run(machine.vote(continuation.id))
                    st.rerun()

        if st.button("Select winning continuation", disabled=view.busy):
            asyncio.run(machine.select_winning_continuation())
            st.rerun()

    text = st.text_area(
        "Write a continuation...",
        value=view.continuation_draft,
        height=100,
    )

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Submitting..." if view.busy else "Submit Continuation", disabled=view.busy):
            machine.set_continuation_draft(text)
            asyncio.run(machine.submit_continuation())
            st.rerun()
    with col2:
        if st.button("Go Back", disabled=view.busy):
            machine.set_continuation_draft(text)
            machine.deselect_story()
            st.rerun()


def main():
    """Main app entry point."""
    st.title("Story Writing App")

    view = select_view(machine.snapshot())
    if isinstance(view, ErrorView):
        render_error(view)
    elif isinstance(view, ConnectingView):
        st.header("Connecting to backend...")
    elif isinstance(view, StoryDetailView):
        render_story_detail(view)
    else:
        render_story_list(view)


main()
