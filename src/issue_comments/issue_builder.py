"""Build the backing GitHub issue for a thread."""

from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING, Any, Final

if TYPE_CHECKING:
    from .models import ThreadConfig

# Every backing issue carries this label next to the thread id
MARKER_LABEL: Final[str] = "gitment"


def format_timestamp(iso_timestamp: str) -> str:
    """Format ISO 8601 timestamp to human-readable format.

    Args:
        iso_timestamp: ISO 8601 formatted timestamp string

    Returns:
        Formatted timestamp (e.g., "2024-01-15 10:30:45Z").
        Returns original value if parsing fails.
    """
    if not iso_timestamp:
        return iso_timestamp

    try:
        timestamp_dt = dt.datetime.fromisoformat(iso_timestamp)
        formatted = timestamp_dt.isoformat(sep=" ", timespec="seconds")
        return formatted.replace("+00:00", "Z")
    except (ValueError, AttributeError):
        return iso_timestamp


def issue_labels(config: ThreadConfig) -> list[str]:
    """Labels of the backing issue: configured labels, the marker label and the thread id."""
    return list(dict.fromkeys([*config.labels, MARKER_LABEL, config.id]))


def build_issue_body(link: str, description: str = "") -> str:
    """Issue body: the page link, then the description."""
    return f"{link}\n\n{description}"


def build_issue_payload(config: ThreadConfig) -> dict[str, Any]:
    """JSON payload for ``POST /repos/{owner}/{repo}/issues``."""
    return {
        "title": config.title,
        "labels": issue_labels(config),
        "body": build_issue_body(config.link, config.description),
    }


def lookup_params(config: ThreadConfig) -> dict[str, str]:
    """Query parameters locating the backing issue of a thread."""
    return {"creator": config.owner, "labels": config.id}
