"""
Pytest configuration for Story Relay tests.

Test Tier System:
- fast (default): Pure unit tests, all I/O mocked
- medium: In-memory backend flows and mocked aiohttp sessions
- slow: Tests against a live backend (STORY_RELAY_ENV, CANISTER_ID_BACKEND)

Run tiers:
- pytest                          # Fast + medium (default addopts skip slow)
- pytest -m medium                # Medium only
- pytest -m slow                  # Slow only
- pytest --override-ini="addopts=" -v   # Full suite (all tiers)

Note: Unmarked tests are auto-assigned to 'fast' tier.
- Tests marked @pytest.mark.integration (without tier) default to 'medium'
"""

import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add src to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from story_relay.config import DeploymentConfig  # noqa: E402
from story_relay.models import Continuation, Environment, Story  # noqa: E402
from story_relay.services import InMemoryStoryBackend, InteractionStateMachine  # noqa: E402


# =============================================================================
# Tier Auto-Assignment
# =============================================================================

def pytest_collection_modifyitems(config, items):
    """
    Automatically assign tier markers to unmarked tests.

    Tests are fast by default unless explicitly marked as medium or slow.
    Integration tests without a tier are assigned to 'medium'.
    """
    for item in items:
        has_tier = (
            list(item.iter_markers(name='fast')) or
            list(item.iter_markers(name='medium')) or
            list(item.iter_markers(name='slow'))
        )
        if has_tier:
            continue

        if list(item.iter_markers(name='skip')):
            continue

        if list(item.iter_markers(name='integration')):
            item.add_marker(pytest.mark.medium)
            continue

        item.add_marker(pytest.mark.fast)


# =============================================================================
# Shared Fixtures
# =============================================================================

FIXED_NOW = datetime(2024, 1, 22, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def project_root():
    """Return project root path (session-scoped for efficiency)."""
    return PROJECT_ROOT


@pytest.fixture
def production_config():
    return DeploymentConfig.for_environment(Environment.PRODUCTION)


@pytest.fixture
def development_config():
    return DeploymentConfig.for_environment(Environment.DEVELOPMENT)


@pytest.fixture
def backend():
    """In-memory backend with a fixed clock."""
    return InMemoryStoryBackend(caller="aaaaa-aa", clock=lambda: FIXED_NOW)


@pytest.fixture
def machine(production_config, backend):
    """State machine wired to the in-memory backend (not started)."""
    return InteractionStateMachine(production_config, backend_factory=lambda config: backend)


def make_continuation(cid: int, voters=(), content: str = None) -> Continuation:
    return Continuation(
        id=cid,
        content=content or f"continuation {cid}",
        author="aaaaa-aa",
        created_at=FIXED_NOW,
        votes=len(voters),
        voters=tuple(voters),
    )


def make_story(story_id: int = 1, continuations=(), selected=(), title: str = None) -> Story:
    return Story(
        id=story_id,
        title=title or f"Story {story_id}",
        introduction=f"Introduction {story_id}",
        author="aaaaa-aa",
        created_at=FIXED_NOW,
        continuations=tuple(continuations),
        selected_continuations=tuple(selected),
    )


# =============================================================================
# Wire Helpers
# =============================================================================

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_nanos(value: datetime) -> int:
    """Nanosecond epoch timestamp, at microsecond precision."""
    delta = value - EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1000


def story_to_wire(story: Story) -> dict:
    """Serialize a story to the backend's camelCase record shape."""
    return {
        "id": story.id,
        "title": story.title,
        "introduction": story.introduction,
        "author": story.author,
        "timestamp": to_nanos(story.created_at),
        "continuations": [
            {
                "id": c.id,
                "content": c.content,
                "author": c.author,
                "timestamp": to_nanos(c.created_at),
                "votes": c.votes,
                "voters": list(c.voters),
            }
            for c in story.continuations
        ],
        "selectedContinuations": list(story.selected_continuations),
    }


def mock_http(status=200, payload=None, text="", body=b"", raises=None):
    """Build a fake _get_aiohttp_session and a list capturing requests."""
    captured = []

    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.json = AsyncMock(return_value=payload)
    mock_response.text = AsyncMock(return_value=text)
    mock_response.read = AsyncMock(return_value=body)

    def request(method):
        @asynccontextmanager
        async def do_request(url, json=None, headers=None):
            captured.append({"method": method, "url": url, "json": json})
            if raises is not None:
                raise raises
            yield mock_response

        return do_request

    mock_session = AsyncMock()
    mock_session.post = request("POST")
    mock_session.get = request("GET")

    @asynccontextmanager
    async def mock_session_ctx():
        yield mock_session

    return mock_session_ctx, captured
