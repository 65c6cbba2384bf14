from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Final

from github import Auth, Github, GithubException, UnknownObjectException

from . import utils
from .exceptions import ThreadError
from .issue_builder import MARKER_LABEL

if TYPE_CHECKING:
    from github.Label import Label
    from github.Repository import Repository

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_TOKEN_ENV_VAR: Final[str] = "GITHUB_TOKEN"  # noqa: S105
_DEFAULT_TOKEN_PASS_PATH: Final[str] = "github/cli/token"  # noqa: S105
MARKER_LABEL_COLOR: Final[str] = "ededed"


def get_token(pass_path: str | None = None) -> str | None:
    """Get GitHub token from pass path, env var GITHUB_TOKEN, or default pass location."""
    if pass_path:
        return utils.get_pass_value(pass_path)

    token: str | None = os.environ.get(_TOKEN_ENV_VAR)
    if token:
        return token

    try:
        return utils.get_pass_value(_DEFAULT_TOKEN_PASS_PATH)
    except (utils.PassError, OSError):
        logger.warning("No GitHub token specified nor found")
        return None


def get_client(token: str | None = None) -> Github:
    """Get a GitHub client using the token. Falls back to anonymous access."""
    if token:
        return Github(auth=Auth.Token(token))
    return Github()


def _is_already_exists_error(exc: GithubException) -> bool:
    """Check if a GithubException is a 422 'already_exists' validation error."""
    if not isinstance(exc.data, dict):
        return False
    errors: object = exc.data.get("errors")
    if not isinstance(errors, list):
        return False
    return any(isinstance(e, dict) and e.get("code") == "already_exists" for e in errors)


def get_repo(client: Github, owner: str, repo: str) -> Repository:
    """Fetch the repository that stores the threads, verifying access."""
    repo_path = f"{owner}/{repo}"
    try:
        repository = client.get_repo(repo_path)
    except UnknownObjectException as e:
        msg = f"Repository {repo_path} not found or not accessible"
        raise ThreadError(msg) from e
    except GithubException as e:
        msg = f"Error accessing repository {repo_path}: {e}"
        raise ThreadError(msg) from e

    if not repository.has_issues:
        msg = f"Issues are disabled on {repo_path}"
        raise ThreadError(msg)
    return repository


def ensure_label(repository: Repository, name: str = MARKER_LABEL, color: str = MARKER_LABEL_COLOR) -> Label:
    """Return the label ``name``, creating it if the repository does not have it yet."""
    try:
        return repository.get_label(name)
    except UnknownObjectException:
        pass

    try:
        label = repository.create_label(name=name, color=color, description="Comment thread")
        logger.info(f"Created label: {name}")
        return label
    except GithubException as e:
        if e.status == 422 and _is_already_exists_error(e):
            # Created concurrently between get_label() and create_label()
            logger.debug(f"Label already existed: {name}")
            return repository.get_label(name)
        msg = f"Failed to create label {name}"
        raise ThreadError(msg) from e
