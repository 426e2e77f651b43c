"""Tests for the story-relay CLI."""

import pytest

from story_relay.cli import main, render
from story_relay.models import ConnectingView, ErrorView, StoryDetailView, StoryDraft, StoryListView
from story_relay.services import InMemoryStoryBackend

from conftest import make_continuation, make_story


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("STORY_RELAY_ENV", "CANISTER_ID_BACKEND", "STORY_RELAY_HOST", "STORY_RELAY_GATEWAY_URL", "STORY_RELAY_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def shared_backend():
    return InMemoryStoryBackend(caller="aaaaa-aa")


def run(argv, backend):
    return main(argv, backend_factory=lambda config: backend)


class TestRender:
    def test_error(self):
        text = render(ErrorView(message="Failed to vote: boom"))

        assert text.startswith("Error")
        assert "Failed to vote: boom" in text

    def test_connecting(self):
        assert render(ConnectingView()) == "Connecting to backend..."

    def test_empty_list(self):
        text = render(StoryListView(stories=(), draft=StoryDraft()))

        assert "No stories yet. Be the first to create one!" in text

    def test_detail_splits_selected_and_candidates(self):
        story = make_story(
            2,
            continuations=[make_continuation(0, content="chosen"), make_continuation(1, voters=["a", "b"], content="maybe")],
            selected=[0],
        )

        text = render(StoryDetailView(story=story, continuation_draft="", notice="Heads up"))

        assert "# Story 2" in text
        assert "chosen" in text
        assert "## Candidate continuations (1)" in text
        assert "[1] 2 votes - maybe" in text
        assert text.endswith("Note: Heads up")


class TestMain:
    def test_list_empty(self, shared_backend, capsys):
        assert run(["list"], shared_backend) == 0

        assert "No stories yet" in capsys.readouterr().out

    def test_create_then_show(self, shared_backend, capsys):
        assert run(["create", "--title", "Title A", "--intro", "Intro A"], shared_backend) == 0
        assert "Created story #0" in capsys.readouterr().out

        assert run(["show", "0"], shared_backend) == 0
        out = capsys.readouterr().out
        assert "# Title A" in out
        assert "No continuations yet." in out

    def test_continue_and_vote(self, shared_backend, capsys):
        run(["create", "--title", "Title A", "--intro", "Intro A"], shared_backend)

        assert run(["continue", "0", "Then it rained."], shared_backend) == 0
        assert "Then it rained." in capsys.readouterr().out

        assert run(["vote", "0", "0"], shared_backend) == 0
        assert run(["vote", "0", "0"], shared_backend) == 0
        assert "Vote for continuation 0 was not accepted." in capsys.readouterr().out

    def test_select_tie_reports_notice(self, shared_backend, capsys):
        run(["create", "--title", "Title A", "--intro", "Intro A"], shared_backend)
        capsys.readouterr()

        assert run(["select", "0"], shared_backend) == 0
        assert "No winning continuation could be selected." in capsys.readouterr().out

    def test_unknown_story_exits_nonzero(self, shared_backend, capsys):
        assert run(["show", "5"], shared_backend) == 1

        assert "Story 5 not found" in capsys.readouterr().err

    def test_backend_failure_renders_error(self, capsys):
        def broken_factory(config):
            raise ValueError("Invalid canister id 'bad'")

        assert main(["list"], backend_factory=broken_factory) == 1
        assert "Failed to initialize backend" in capsys.readouterr().out

    def test_empty_title_rejected(self, shared_backend):
        with pytest.raises(SystemExit):
            run(["create", "--title", " ", "--intro", "Intro A"], shared_backend)

        assert shared_backend.calls == []
