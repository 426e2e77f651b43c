#!/usr/bin/env python
"""
Story Relay CLI - browse and extend collaborative stories.

Usage:
    story-relay list                          # List all stories
    story-relay show <id>                     # Show a story and its continuations
    story-relay create --title T --intro I    # Start a new story
    story-relay continue <id> "text"          # Submit a continuation
    story-relay vote <id> <continuation_id>   # Vote for a continuation
    story-relay select <id>                   # Promote the leading continuation

Environment:
    STORY_RELAY_ENV          development | production (default)
    CANISTER_ID_BACKEND      backend canister id
    STORY_RELAY_GATEWAY_URL  canister HTTP interface (default https://<id>.ic0.app)
    LOG_LEVEL                logging level (default WARNING)
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from .config import DeploymentConfig
from .logging_utils import configure_safe_logging
from .models import (
    ConnectingView,
    ErrorView,
    InteractionState,
    RenderContext,
    StoryDetailView,
    StoryListView,
)
from .services import InteractionStateMachine, select_view
from .services.session import BackendFactory


def render(view: RenderContext) -> str:
    """Render a view context as plain text."""
    if isinstance(view, ErrorView):
        return f"Error\n\n{view.message}\n\nRun the command again to reload."

    if isinstance(view, ConnectingView):
        return "Connecting to backend..."

    lines = []
    if isinstance(view, StoryDetailView):
        story = view.story
        lines.append(f"# {story.title}  (#{story.id}, by {story.author})")
        lines.append("")
        lines.append(story.introduction)
        for continuation in story.selected:
            lines.append("")
            lines.append(continuation.content)

        candidates = [c for c in story.continuations if c.id not in story.selected_continuations]
        lines.append("")
        lines.append(f"## Candidate continuations ({len(candidates)})")
        if not candidates:
            lines.append("No continuations yet.")
        for continuation in candidates:
            lines.append(f"  [{continuation.id}] {continuation.votes} votes - {continuation.content}")

    elif isinstance(view, StoryListView):
        lines.append("Existing Stories")
        lines.append("-" * 40)
        if not view.stories:
            lines.append("No stories yet. Be the first to create one!")
        for story in view.stories:
            lines.append(f"{story.id:>4}  {story.title}")
            lines.append(f"      {story.introduction}")

    if view.notice:
        lines.append("")
        lines.append(f"Note: {view.notice}")
    return "\n".join(lines)


async def run_command(args, machine: InteractionStateMachine) -> RenderContext:
    """Start the machine, perform one command and return the final view."""
    await machine.start()
    if machine.state != InteractionState.READY_IDLE:
        return select_view(machine.snapshot())

    if args.command == "create":
        machine.update_story_draft(title=args.title, introduction=args.intro)
        story_id = await machine.create_story()
        if story_id is not None:
            print(f"Created story #{story_id}")
    elif args.command != "list":
        machine.select_story(args.story_id)
        if args.command == "continue":
            machine.set_continuation_draft(args.text)
            await machine.submit_continuation()
        elif args.command == "vote":
            await machine.vote(args.continuation_id)
        elif args.command == "select":
            await machine.select_winning_continuation()

    return select_view(machine.snapshot())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="story-relay",
        description="Collaborative branching stories",
    )
    parser.add_argument("--env", choices=["development", "production"], help="Deployment environment")
    parser.add_argument("--canister-id", help="Backend canister id")
    parser.add_argument("--host", help="Network host URL")
    parser.add_argument("--gateway-url", help="Canister HTTP interface URL")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List all stories")

    show = subparsers.add_parser("show", help="Show a story")
    show.add_argument("story_id", type=int)

    create = subparsers.add_parser("create", help="Start a new story")
    create.add_argument("--title", required=True)
    create.add_argument("--intro", required=True)

    cont = subparsers.add_parser("continue", help="Submit a continuation")
    cont.add_argument("story_id", type=int)
    cont.add_argument("text")

    vote = subparsers.add_parser("vote", help="Vote for a continuation")
    vote.add_argument("story_id", type=int)
    vote.add_argument("continuation_id", type=int)

    select = subparsers.add_parser("select", help="Promote the leading continuation")
    select.add_argument("story_id", type=int)

    return parser


def main(argv: Optional[List[str]] = None, backend_factory: Optional[BackendFactory] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose >= 2:
        configure_safe_logging("DEBUG")
    elif args.verbose == 1:
        configure_safe_logging("INFO")
    else:
        configure_safe_logging()

    if args.command == "create" and not (args.title.strip() and args.intro.strip()):
        parser.error("--title and --intro must not be empty")
    if args.command == "continue" and not args.text.strip():
        parser.error("continuation text must not be empty")

    config = DeploymentConfig.from_env(
        environment=args.env,
        canister_id=args.canister_id,
        host=args.host,
        gateway_url=args.gateway_url,
    )
    machine = InteractionStateMachine(config, backend_factory=backend_factory)

    try:
        view = asyncio.run(run_command(args, machine))
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 1

    print(render(view))
    return 1 if isinstance(view, ErrorView) else 0


if __name__ == "__main__":
    sys.exit(main())
