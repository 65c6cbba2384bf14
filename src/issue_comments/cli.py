"""
Command-line interface for issue-backed comment threads.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

from . import github_utils as ghu
from .exceptions import NotInitializedError, ThreadError
from .identity import ACCESS_TOKEN_KEY, FileIdentityCache, MemoryIdentityCache
from .navigation import StaticNavigation
from .render import RENDER_KINDS
from .thread import CommentThread
from .utils import setup_logging

logger: logging.Logger = logging.getLogger(__name__)

_CLIENT_ID_ENV_VAR = "ISSUE_COMMENTS_CLIENT_ID"
_CLIENT_SECRET_ENV_VAR = "ISSUE_COMMENTS_CLIENT_SECRET"  # noqa: S105


def parse_repo_path(repo_path: str) -> tuple[str, str]:
    """Split ``owner/repo`` into its parts."""
    parts = repo_path.strip().split("/")
    if len(parts) != 2:
        msg = f"Invalid GitHub repository path '{repo_path}'. Expected format: 'owner/repository'"
        raise argparse.ArgumentTypeError(msg)
    owner, repo = parts
    if not owner or not repo:
        msg = f"Invalid GitHub repository path '{repo_path}'. Both owner and repository name must be non-empty"
        raise argparse.ArgumentTypeError(msg)
    return owner, repo


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Comment threads stored in GitHub issues")
    _ = parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_thread_arguments(sub: argparse.ArgumentParser) -> None:
        _ = sub.add_argument("repo_path", type=parse_repo_path, help="GitHub repository path (owner/repo)")
        _ = sub.add_argument("link", help="URL of the page the thread belongs to")
        _ = sub.add_argument("--id", dest="thread_id", help="Thread id (default: the page link)")

    init = subparsers.add_parser("init", help="Create the backing issue of a thread")
    add_thread_arguments(init)
    _ = init.add_argument("--title", help="Issue title (default: the page link)")
    _ = init.add_argument("--desc", default="", help="Description added to the issue body")
    _ = init.add_argument(
        "--label", "-l", dest="labels", action="append", help="Extra issue label. Can be specified multiple times."
    )
    _ = init.add_argument(
        "--github-pass-token", help="Path for GitHub token in pass utility (default: github/cli/token)"
    )

    show = subparsers.add_parser("show", help="Print a thread")
    add_thread_arguments(show)
    _ = show.add_argument("--page", type=int, default=1, help="Comment page to show")
    _ = show.add_argument("--per-page", type=int, default=None, help="Comments per page")
    _ = show.add_argument("--identity-file", help="JSON file caching the access token and user profile")

    login = subparsers.add_parser("login-link", help="Print the GitHub OAuth login link for a page")
    add_thread_arguments(login)
    _ = login.add_argument("--client-id", default=os.environ.get(_CLIENT_ID_ENV_VAR, ""), help="OAuth client id")

    return parser.parse_args(argv)


async def run_init(args: argparse.Namespace) -> int:
    owner, repo = args.repo_path
    token = ghu.get_token(args.github_pass_token)
    if not token:
        logger.error("A GitHub token is required to initialize a thread")
        return 1

    repository = ghu.get_repo(ghu.get_client(token), owner, repo)
    _ = ghu.ensure_label(repository)

    thread = CommentThread(
        owner=owner,
        repo=repo,
        id=args.thread_id,
        title=args.title,
        link=args.link,
        desc=args.desc,
        labels=args.labels,
        identity=MemoryIdentityCache({ACCESS_TOKEN_KEY: token}),
        navigation=StaticNavigation(args.link),
    )
    try:
        issue = await thread.load_meta()
    except NotInitializedError:
        _ = await thread.init()
        issue = thread.state.meta
        assert issue is not None  # set by init()
        print(f"Initialized thread '{thread.config.id}' as {issue.html_url or f'issue #{issue.number}'}")
        return 0

    print(f"Thread '{thread.config.id}' is already initialized as issue #{issue.number}")
    return 0


async def run_show(args: argparse.Namespace) -> int:
    owner, repo = args.repo_path
    identity = FileIdentityCache(args.identity_file) if args.identity_file else MemoryIdentityCache()
    thread = CommentThread(
        owner=owner,
        repo=repo,
        id=args.thread_id,
        link=args.link,
        per_page=args.per_page,
        identity=identity,
        navigation=StaticNavigation(args.link),
        oauth={
            "client_id": os.environ.get(_CLIENT_ID_ENV_VAR, ""),
            "client_secret": os.environ.get(_CLIENT_SECRET_ENV_VAR, ""),
        },
    )
    containers = thread.mount_all()
    await thread.start()
    if args.page != 1 and thread.state.error is None:
        _ = await thread.goto(args.page)

    for kind in RENDER_KINDS:
        print(containers[kind].content)
        print()
    thread.close()
    return 0 if thread.state.error is None else 1


def run_login_link(args: argparse.Namespace) -> int:
    owner, repo = args.repo_path
    thread = CommentThread(
        owner=owner,
        repo=repo,
        id=args.thread_id,
        link=args.link,
        navigation=StaticNavigation(args.link),
        oauth={"client_id": args.client_id},
    )
    print(thread.login_link)
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)

    verbose: bool = getattr(args, "verbose", False)
    setup_logging(verbose=verbose)

    try:
        if args.command == "init":
            code = asyncio.run(run_init(args))
        elif args.command == "show":
            code = asyncio.run(run_show(args))
        else:
            code = run_login_link(args)
    except ThreadError:
        logger.exception(f"Command '{args.command}' failed")
        sys.exit(1)

    sys.exit(code)
